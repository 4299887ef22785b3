import logging

from .database import engine, SessionLocal, Base
from .models import Group, Role, Permission, RolePermission, User, UserRole
from orgaccess.utils.group_tree import build_path

logger = logging.getLogger(__name__)

# (이름, 부모 이름) - 부모가 먼저 나와야 합니다.
DEFAULT_GROUPS = [
    ("TI", None),
    ("Desenvolvimento", "TI"),
    ("Infraestrutura", "TI"),
    ("RH", None),
    ("Recrutamento", "RH"),
    ("Financeiro", None),
    ("Contabilidade", "Financeiro"),
]

DEFAULT_PERMISSIONS = [
    ("ticket", "read"),
    ("ticket", "resolve"),
    ("ticket", "delete"),
    ("group", "manage"),
    ("role", "manage"),
    ("user", "manage"),
]

def initialize_db(session_factory=SessionLocal, bind=engine):
    """
    테이블을 생성하고, 기본 그룹 트리/역할/권한/관리자 사용자를 삽입합니다.
    이미 사용자가 존재하면 기본 데이터 삽입을 건너뜁니다.
    """
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=bind)

    db = session_factory()
    try:
        if db.query(User).first():
            logger.info("Seed data already present, skipping.")
            return

        # Groups (path는 부모 path에 이름을 이어 붙여 계산)
        groups = {}
        for name, parent_name in DEFAULT_GROUPS:
            parent = groups.get(parent_name)
            group = Group(
                name=name,
                parent_id=parent.id if parent else None,
                is_active=True,
                path=build_path(name, parent.path if parent else None),
            )
            db.add(group)
            db.flush()
            groups[name] = group

        # Permissions & Roles
        permissions = {}
        for resource, action in DEFAULT_PERMISSIONS:
            permission = Permission(name=f"{resource}:{action}", resource=resource, action=action)
            db.add(permission)
            permissions[(resource, action)] = permission

        admin_role = Role(name='Admin', description='Full administrative access')
        support_role = Role(name='Support', description='Help desk agents')
        db.add(admin_role)
        db.add(support_role)
        db.flush()

        for permission in permissions.values():
            db.add(RolePermission(role_id=admin_role.id, permission_id=permission.id))
        db.add(RolePermission(role_id=support_role.id, permission_id=permissions[("ticket", "read")].id))
        db.add(RolePermission(role_id=support_role.id, permission_id=permissions[("ticket", "resolve")].id))

        # User
        admin_user = User(
            email='admin@example.com',
            name='Administrator',
            is_active=True,
            is_super_admin=True,
            is_group_admin=True,
            group_id=groups["TI"].id,
        )
        db.add(admin_user)
        db.flush()
        db.add(UserRole(user_id=admin_user.id, role_id=admin_role.id))

        db.commit()
        logger.info("Database initialized with seed data.")

    except Exception:
        logger.exception("Failed to initialize database")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    initialize_db()
