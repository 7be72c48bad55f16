# shop_service/services/role_service.py
"""Role resolution and super-admin role management"""
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import (
    ShopError,
    AuthorizationDenied,
    DuplicateRoleAssignment,
    PersistenceError,
    RoleNotFound,
    SelfRoleRemoval,
    UserNotFound,
)
from shop_service.models.user import DEFAULT_ROLE, ROLE_DESCRIPTIONS, Role, RoleName, User, UserRole
from typing import List, Optional, Union
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("shop_service.audit")
tracer = trace.get_tracer(__name__)


class RoleService:
    """Role directory: one role per user, default ``user``"""

    @staticmethod
    def _audit(action: str, actor_id, target_id: int, outcome: str, role: Optional[str] = None, reason: str = None):
        audit_logger.info(
            f"{action} by {actor_id} on user {target_id}: {outcome}",
            extra={
                "action": action,
                "actor_id": actor_id,
                "target_id": target_id,
                "role": role,
                "outcome": outcome,
                "reason": reason,
            }
        )

    @staticmethod
    def _assignment(db: Session, user_id: int, for_update: bool = False) -> Optional[UserRole]:
        query = select(UserRole).where(UserRole.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        return db.scalars(query).first()

    @staticmethod
    def get_role(db: Session, user_id: int) -> RoleName:
        """Resolved role of a user; users without an assignment are regular users"""
        assignment = RoleService._assignment(db, user_id)
        if assignment is None:
            return DEFAULT_ROLE
        return assignment.role.name

    @staticmethod
    def has_role(db: Session, user_id: int, *roles: RoleName) -> bool:
        return RoleService.get_role(db, user_id) in roles

    @staticmethod
    def _require_super_admin(db: Session, acting_user_id: int, message: str):
        if RoleService.get_role(db, acting_user_id) != RoleName.SUPER_ADMIN:
            raise AuthorizationDenied(message)

    @staticmethod
    def _get_role_row(db: Session, role_name: Union[RoleName, str]) -> Role:
        try:
            role_name = RoleName(role_name)
        except ValueError:
            raise RoleNotFound(f"role {role_name} not found")

        role = db.scalars(select(Role).where(Role.name == role_name)).first()
        if role is None:
            raise RoleNotFound(f"role {role_name.value} not found")
        return role

    @staticmethod
    def _upsert(db: Session, user_id: int, role: Role):
        """Point the single user_roles row at ``role``, creating it if absent"""
        assignment = RoleService._assignment(db, user_id, for_update=True)
        if assignment is None:
            db.add(UserRole(user_id=user_id, role=role))
        else:
            assignment.role = role

    @staticmethod
    def assign_role(
        db: Session,
        target_user_id: int,
        role_name: Union[RoleName, str],
        acting_user_id: int
    ):
        """Assign ``role_name`` to a user, replacing any previous role (super_admin only)"""
        requested = getattr(role_name, "value", role_name)

        with tracer.start_as_current_span("role_service.assign_role") as span:
            span.set_attribute("user.id", target_user_id)
            span.set_attribute("actor.id", acting_user_id)
            span.set_attribute("role", requested)

            try:
                RoleService._require_super_admin(db, acting_user_id, "only super admin can assign roles")

                role = RoleService._get_role_row(db, role_name)

                if db.get(User, target_user_id) is None:
                    raise UserNotFound(target_user_id)

                if RoleService.get_role(db, target_user_id) == role.name:
                    raise DuplicateRoleAssignment(f"user {target_user_id} already has role {role.name.value}")

                RoleService._upsert(db, target_user_id, role)
                db.commit()
            except ShopError as e:
                db.rollback()
                RoleService._audit("assign_role", acting_user_id, target_user_id, "rejected", requested, e.message)
                raise
            except SQLAlchemyError as e:
                db.rollback()
                RoleService._audit("assign_role", acting_user_id, target_user_id, "failed", requested, str(e))
                raise PersistenceError("failed to assign role") from e

            db.expire_all()
            RoleService._audit("assign_role", acting_user_id, target_user_id, "success", requested)

    @staticmethod
    def remove_role(db: Session, target_user_id: int, acting_user_id: int):
        """Drop a user's explicit role so it falls back to ``user`` (super_admin only)"""
        with tracer.start_as_current_span("role_service.remove_role") as span:
            span.set_attribute("user.id", target_user_id)
            span.set_attribute("actor.id", acting_user_id)

            try:
                RoleService._require_super_admin(db, acting_user_id, "only super admin can remove roles")

                if target_user_id == acting_user_id:
                    raise SelfRoleRemoval()

                if db.get(User, target_user_id) is None:
                    raise UserNotFound(target_user_id)

                assignment = RoleService._assignment(db, target_user_id, for_update=True)
                if assignment is None:
                    raise RoleNotFound("user has no role to remove")

                removed = assignment.role.name.value
                db.delete(assignment)
                db.commit()
            except ShopError as e:
                db.rollback()
                RoleService._audit("remove_role", acting_user_id, target_user_id, "rejected", reason=e.message)
                raise
            except SQLAlchemyError as e:
                db.rollback()
                RoleService._audit("remove_role", acting_user_id, target_user_id, "failed", reason=str(e))
                raise PersistenceError("failed to remove role") from e

            db.expire_all()
            RoleService._audit("remove_role", acting_user_id, target_user_id, "success", removed)

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        return list(db.scalars(select(Role).order_by(Role.id)).all())

    @staticmethod
    def get_users_by_role(db: Session, role_name: RoleName) -> List[User]:
        """Users whose resolved role is ``role_name``"""
        query = select(User).outerjoin(UserRole, UserRole.user_id == User.id).outerjoin(Role, Role.id == UserRole.role_id)
        if role_name == DEFAULT_ROLE:
            query = query.where((Role.name == role_name) | (UserRole.id.is_(None)))
        else:
            query = query.where(Role.name == role_name)
        return list(db.scalars(query.order_by(User.id)).all())

    @staticmethod
    def get_all_users_with_roles(db: Session) -> List[User]:
        return list(db.scalars(select(User).order_by(User.id)).all())

    @staticmethod
    def seed_default_roles(db: Session):
        """Create any missing role rows"""
        existing = set(db.scalars(select(Role.name)).all())
        created = []
        for name, description in ROLE_DESCRIPTIONS.items():
            if name not in existing:
                db.add(Role(name=name, description=description))
                created.append(name.value)
        if created:
            db.commit()
            logger.info(f"Created default roles: {', '.join(created)}")

    @staticmethod
    def bootstrap_super_admin(db: Session, email: str):
        """Promote the configured account to super_admin if it exists"""
        user = db.scalars(select(User).where(User.email == email)).first()
        if user is None:
            logger.warning(f"Super admin account {email} not registered yet")
            return

        if RoleService.get_role(db, user.id) == RoleName.SUPER_ADMIN:
            return

        try:
            RoleService._upsert(db, user.id, RoleService._get_role_row(db, RoleName.SUPER_ADMIN))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to bootstrap super admin") from e

        db.expire_all()
        RoleService._audit("assign_role", "system", user.id, "success", RoleName.SUPER_ADMIN.value)
