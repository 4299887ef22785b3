from .group import IGroupRepository
from .role import IRoleRepository
from .permission import IPermissionRepository
from .user_role import IUserRoleRepository
from .scoped import IScopedEntityRepository
from .user import IUserRepository
