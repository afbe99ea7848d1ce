from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import uuid

from app.core.errors import StoreFailure, ValidationFailure
from app.db.models.user import User as UserModel
from app.domains.identity.entities import User


class UserRepository:
    """Persistence for user accounts"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        db_user = UserModel(
            uuid=user.uuid,
            email=user.email,
            username=user.username,
            password_hash=user.password_hash,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at
        )

        self.session.add(db_user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationFailure("User with this email or username already exists")
        except SQLAlchemyError:
            await self.session.rollback()
            raise StoreFailure()
        await self.session.refresh(db_user)
        return self._to_domain(db_user)

    async def get_by_uuid(self, user_uuid: uuid.UUID) -> Optional[User]:
        return await self._fetch_one(select(UserModel).where(UserModel.uuid == user_uuid))

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._fetch_one(select(UserModel).where(UserModel.email == email))

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def username_exists(self, username: str) -> bool:
        return await self._fetch_one(select(UserModel).where(UserModel.username == username)) is not None

    async def _fetch_one(self, stmt) -> Optional[User]:
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError:
            raise StoreFailure()
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    def _to_domain(self, db_user: UserModel) -> User:
        return User(
            uuid=db_user.uuid,
            email=db_user.email,
            username=db_user.username,
            password_hash=db_user.password_hash,
            is_active=db_user.is_active,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
