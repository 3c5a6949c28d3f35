from sqlalchemy import inspect

from models import db
from models.user import Role
from security.rbac import ROLE_ADMIN, ROLE_USER

DEFAULT_ROLES = [ROLE_USER, ROLE_ADMIN]

def seed_roles():
    # before the first migration (e.g. while running `flask db upgrade`) there is nothing to seed
    if not inspect(db.engine).has_table(Role.__tablename__):
        return
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()
