from .group import Group
from .role import Role, Permission
from .association import UserRole, RolePermission
from .user import User
