from datetime import datetime
from security.rbac import ROLE_ADMIN
from models.db import db

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(120), nullable=True, index=True)
    phone_number = db.Column(db.String(30), nullable=True)

    # unverified customers can log in but cannot book until an admin verifies them
    verified = db.Column(db.Boolean, default=False, nullable=False)
    # soft delete, set from the admin users page
    disabled = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    @property
    def is_admin(self) -> bool:
        return any(r.name == ROLE_ADMIN for r in self.roles)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # USER, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
