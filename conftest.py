"""
Shared pytest fixtures for the Identity Reconciliation test suite
Every test gets its own SQLite database file through aiosqlite.
"""

import os

# Set test environment variables before importing application modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DEBUG", "False")

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select, func

from database import DatabaseManager
from models import Contact, LinkPrecedence
from services.contact_store import ContactStore
from services.identity_service import IdentityService

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest_asyncio.fixture
async def db(tmp_path):
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'contacts.db'}", echo=False)
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def service(db):
    return IdentityService(db_manager=db, store_timeout=5)


@pytest_asyncio.fixture
async def store(db):
    async with db.get_session() as session:
        yield ContactStore(session, timeout=5, dialect_name=db.dialect_name)


@pytest.fixture
def add_contact(db):
    """
    Insert a contact row directly, bypassing the engine

    minutes offsets created_at from BASE_TIME so tests control seniority
    independently of insertion order.
    """
    async def _add(email=None, phone_number=None, linked_id=None, minutes=0, precedence=None):
        if precedence is None:
            precedence = LinkPrecedence.SECONDARY if linked_id else LinkPrecedence.PRIMARY
        created_at = BASE_TIME + timedelta(minutes=minutes)
        async with db.get_session() as session:
            contact = Contact(
                email=email,
                phone_number=phone_number,
                linked_id=linked_id,
                link_precedence=precedence.value,
                created_at=created_at,
                updated_at=created_at
            )
            session.add(contact)
            await session.flush()
        return contact

    return _add


@pytest.fixture
def fetch_contact(db):
    async def _fetch(contact_id):
        async with db.get_session() as session:
            return await session.get(Contact, contact_id)

    return _fetch


@pytest.fixture
def count_contacts(db):
    async def _count():
        async with db.get_session() as session:
            return await session.scalar(select(func.count()).select_from(Contact))

    return _count
