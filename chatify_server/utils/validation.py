import re

PHONE_PATTERN = re.compile(r'^\+\d{10,15}$')


def is_valid_phone(phone) -> bool:
    return isinstance(phone, str) and bool(PHONE_PATTERN.match(phone))


def validate_registration(data):
    errors = {}
    phone = data.get('phoneNumber')
    if not phone or not str(phone).strip():
        errors['phoneNumber'] = 'Phone number is required.'
    elif not is_valid_phone(phone):
        errors['phoneNumber'] = 'Invalid phone number format.'
    if not data.get('username') or not str(data.get('username')).strip():
        errors['username'] = 'Username is required.'
    return (len(errors) == 0, errors)


def validate_group(data):
    errors = {}
    if not data.get('name') or not str(data.get('name')).strip():
        errors['name'] = 'Group name is required.'
    members = data.get('members')
    if not members or not isinstance(members, list):
        errors['members'] = 'Members must be a non-empty list.'
    elif any(not is_valid_phone(m) for m in members):
        errors['members'] = 'Every member must be a valid phone number.'
    creator = data.get('createdBy')
    if not creator:
        errors['createdBy'] = 'Creator is required.'
    elif not is_valid_phone(creator):
        errors['createdBy'] = 'Invalid phone number format.'
    return (len(errors) == 0, errors)
