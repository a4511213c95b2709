"""
SQLAlchemy implementation of the account repository.

Each operation runs in its own short session taken from the session factory,
so one repository instance can serve concurrent requests.
"""

# Standard library imports
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from uuid import UUID

# Third-party imports
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

# Local imports
from timecapsule_auth.application.interfaces.exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    RepositoryError,
)
from timecapsule_auth.application.interfaces.repositories import AccountFilter, ProfileUpdate
from timecapsule_auth.domain.entities.account import Account, AccountStatus
from timecapsule_auth.infrastructure.auth.models import AccountModel

logger = logging.getLogger(__name__)


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlAlchemyAccountRepository:
    """Account store backed by a relational database."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except (AccountNotFoundError, DuplicateAccountError):
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Account store {operation} failed: {e}")
            raise RepositoryError(f"Failed to {operation} account", cause=e) from e
        finally:
            session.close()

    @staticmethod
    def _by_email(session: Session, email: str, for_update: bool = False) -> AccountModel | None:
        stmt = select(AccountModel).where(
            func.lower(AccountModel.email) == Account.normalize_email(email)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def create(self, account: Account) -> Account:
        session = self._session_factory()
        try:
            session.add(AccountModel.from_entity(account))
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise DuplicateAccountError(account.email) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Account store create failed: {e}")
            raise RepositoryError("Failed to create account", cause=e) from e
        finally:
            session.close()

        logger.info(f"Created account {account.id}")
        return account

    def get_by_email(self, email: str) -> Account | None:
        with self._session("get") as session:
            model = self._by_email(session, email)
            return model.to_entity() if model else None

    def get_by_id(self, account_id: UUID) -> Account | None:
        with self._session("get") as session:
            model = session.get(AccountModel, account_id)
            return model.to_entity() if model else None

    def update_profile(self, account_id: UUID, profile: ProfileUpdate) -> Account:
        with self._session("update") as session:
            model = session.get(AccountModel, account_id)
            if model is None:
                raise AccountNotFoundError(account_id)
            model.username = profile.username  # type: ignore[assignment]
            model.full_name = profile.full_name  # type: ignore[assignment]
            model.date_of_birth = profile.date_of_birth  # type: ignore[assignment]
            model.updated_at = datetime.now(UTC)  # type: ignore[assignment]
            session.flush()
            return model.to_entity()

    def update_credential(self, email: str, password_hash: str) -> Account:
        """
        Store a new credential hash.

        The status change that comes with it is decided from the row as it is
        locked here, so an approval committed since the caller's read is kept.
        """
        with self._session("update") as session:
            model = self._by_email(session, email, for_update=True)
            if model is None:
                raise AccountNotFoundError(email)
            account = model.to_entity()
            account.set_credential(password_hash)
            model.password_hash = password_hash  # type: ignore[assignment]
            model.status = account.status.value  # type: ignore[assignment]
            model.updated_at = datetime.now(UTC)  # type: ignore[assignment]
            session.flush()
            return model.to_entity()

    def update_status(self, email: str, status: AccountStatus) -> Account:
        with self._session("update") as session:
            model = self._by_email(session, email)
            if model is None:
                raise AccountNotFoundError(email)
            model.status = status.value  # type: ignore[assignment]
            model.updated_at = datetime.now(UTC)  # type: ignore[assignment]
            session.flush()
            return model.to_entity()

    def delete(self, account_id: UUID) -> bool:
        with self._session("delete") as session:
            model = session.get(AccountModel, account_id)
            if model is None:
                return False
            session.delete(model)
            logger.info(f"Deleted account {account_id}")
            return True

    def list(self, filters: AccountFilter) -> "list[Account]":
        columns = {
            "email": AccountModel.email,
            "full_name": AccountModel.full_name,
            "username": AccountModel.username,
            "status": AccountModel.status,
            "role": AccountModel.role,
        }
        stmt = select(AccountModel)
        for name, column in columns.items():
            value = getattr(filters, name)
            if value:
                stmt = stmt.where(column.ilike(_like_pattern(value), escape="\\"))
        stmt = stmt.order_by(AccountModel.created_at)

        with self._session("list") as session:
            return [model.to_entity() for model in session.execute(stmt).scalars()]
