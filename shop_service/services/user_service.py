"""User business logic"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import AlreadyExists, PersistenceError, UserNotFound
from shop_service.models.user import User
from shop_service.models.schemas import UserCreate, UserUpdate
from typing import Optional
from passlib.context import CryptContext
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserService:
    """User service for business logic"""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get user by ID"""
        with tracer.start_as_current_span("user_service.get_user") as span:
            span.set_attribute("user.id", user_id)
            user = db.get(User, user_id)
            if user is None:
                raise UserNotFound(user_id)
            return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.scalars(select(User).where(User.email == email.lower())).first()

    @staticmethod
    def create_user(db: Session, user_data: UserCreate) -> User:
        """Create new user"""
        with tracer.start_as_current_span("user_service.create_user") as span:
            email = user_data.email.lower()
            if UserService.get_user_by_email(db, email):
                raise AlreadyExists(f"email {email} already registered")

            user = User(
                email=email,
                first_name=user_data.first_name,
                last_name=user_data.last_name,
                hashed_password=UserService.hash_password(user_data.password),
                is_active=True
            )

            db.add(user)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise AlreadyExists(f"email {email} already registered") from e
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError("failed to create user") from e
            db.refresh(user)

            span.set_attribute("user.id", user.id)
            logger.info(f"Created user {user.id}: {user.email}")

            return user

    @staticmethod
    def update_user(db: Session, user_id: int, user_data: UserUpdate) -> User:
        """Update profile fields"""
        user = UserService.get_user(db, user_id)

        for field, value in user_data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(user, field, value)

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to update user") from e
        db.refresh(user)

        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user"""
        with tracer.start_as_current_span("user_service.authenticate") as span:
            span.set_attribute("user.email", email)

            user = UserService.get_user_by_email(db, email)
            if not user:
                logger.warning(f"User {email} not found")
                return None

            if not user.is_active:
                logger.warning(f"User {email} is inactive")
                return None

            if not UserService.verify_password(password, user.hashed_password):
                logger.warning(f"Invalid password for user {email}")
                return None

            logger.info(f"User {email} authenticated successfully")
            return user
