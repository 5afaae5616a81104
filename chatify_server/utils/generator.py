import uuid
import random


def generate_key(length):
    return ''.join(random.choices('0123456789', k=length))


def generate_uuid_hex(length=32):
    return uuid.uuid4().hex[:length]


def generate_message_id():
    return f"MSG-{generate_uuid_hex(20)}"


def generate_group_id():
    return f"GRP-{generate_key(10)}"
