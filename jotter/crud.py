"""Parameterised queries against the durable store.

Every helper takes the request's ``AsyncSession`` and commits its own writes,
so route handlers stay a thin translation between HTTP and these calls.
"""
import secrets
import string
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import and_, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jotter.models.note import Note
from jotter.models.user import User

DEFAULT_TITLE = "Untitled Note"

_BASE36 = string.digits + string.ascii_lowercase
PUBLIC_ID_FRAGMENT_LENGTH = 13


def _base36_fragment(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_public_id() -> str:
    """Two random base-36 fragments, roughly 134 bits of entropy"""
    return _base36_fragment(PUBLIC_ID_FRAGMENT_LENGTH) + _base36_fragment(PUBLIC_ID_FRAGMENT_LENGTH)


# Users

async def create_user(db: AsyncSession, email: str, full_name: str, avatar_url: Optional[str] = None) -> User:
    user = User(email=email, full_name=full_name, avatar_url=avatar_url)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def fetch_user(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def fetch_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def update_user(
    db: AsyncSession,
    user: User,
    full_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> User:
    if full_name is None and avatar_url is None:
        raise ValueError("No updates provided")

    if full_name is not None:
        user.full_name = full_name
    if avatar_url is not None:
        user.avatar_url = avatar_url

    await db.commit()
    await db.refresh(user)
    return user


# Notes

async def fetch_notes(db: AsyncSession, user_id: str) -> List[Note]:
    """Return the owner's notes, newest first"""
    result = await db.execute(
        select(Note)
        .where(Note.user_id == user_id)
        .order_by(Note.created_at.desc())
    )
    return list(result.scalars().all())


async def fetch_owned_note(db: AsyncSession, note_id: str, user_id: str) -> Optional[Note]:
    result = await db.execute(
        select(Note).where(and_(Note.id == note_id, Note.user_id == user_id))
    )
    return result.scalar_one_or_none()


async def create_note(db: AsyncSession, user_id: Optional[str], title: str, content: str) -> Note:
    note = Note(title=title, content=content, user_id=user_id)
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return note


async def update_note(db: AsyncSession, note: Note, **fields) -> Note:
    """Apply a partial update; fields left out (or ``None``) are untouched"""
    changed = False
    for field in ("title", "content", "is_public", "public_id"):
        if field in fields and (fields[field] is not None or field == "public_id"):
            setattr(note, field, fields[field])
            changed = True

    if not changed:
        return note

    note.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(note)
    return note


async def delete_note(db: AsyncSession, note_id: str, user_id: str) -> None:
    """Delete a note only if it belongs to ``user_id``; otherwise nothing happens"""
    await db.execute(
        delete(Note).where(and_(Note.id == note_id, Note.user_id == user_id))
    )
    await db.commit()


async def fetch_public_note(db: AsyncSession, public_id: str) -> Optional[Tuple[Note, str]]:
    """Return the shared note together with its author's display name"""
    result = await db.execute(
        select(Note, User.full_name)
        .join(User, Note.user_id == User.id)
        .where(and_(Note.public_id == public_id, Note.is_public.is_(True)))
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1]


async def fetch_leaderboard(db: AsyncSession) -> List[dict]:
    note_count = func.count(Note.id).label("note_count")
    result = await db.execute(
        select(User.id, User.full_name, User.avatar_url, note_count)
        .outerjoin(Note, Note.user_id == User.id)
        .group_by(User.id, User.full_name, User.avatar_url)
        .order_by(desc("note_count"), User.full_name.asc())
    )
    return [
        {
            "id": row.id,
            "full_name": row.full_name,
            "avatar_url": row.avatar_url,
            "note_count": row.note_count,
        }
        for row in result.all()
    ]
