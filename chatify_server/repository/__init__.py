from chatify_server.repository.base_repository import BaseRepository
from chatify_server.repository.user_repository import UserRepository
from chatify_server.repository.group_repository import GroupRepository

__all__ = ['BaseRepository', 'UserRepository', 'GroupRepository']
