"""Default forum fixtures, inserted on startup when the tables are empty."""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models import Comment, Post, Topic, User

logger = logging.getLogger(__name__)

# alice is the moderator, bob a regular user.
USERS = [
    {"username": "alice", "is_moderator": True},
    {"username": "bob", "is_moderator": False},
]

TOPICS = [
    {"title": "General", "description": "General discussion"},
    {"title": "Homework", "description": "Ask about assignments"},
]

# (topic index, author index, title, content)
POSTS = [
    (0, 0, "Welcome to the forum", "Introduce yourself and say hi!"),
    (0, 1, "General chat", "Talk about anything not related to homework."),
    (1, 0, "Math homework question", "I am stuck on question 3 of the worksheet."),
    (1, 1, "Project deadline reminder", "Don't forget the assignment is due next week."),
]

# (post index, author index, content)
COMMENTS = [
    (0, 0, "Hello everyone!"),
    (0, 1, "Nice to meet you all."),
    (1, 1, "I love random chats."),
    (2, 0, "Same, I'm also stuck on that question."),
    (3, 1, "Thanks for the reminder!"),
]


async def _is_empty(session: AsyncSession, model) -> bool:
    count = (await session.execute(select(func.count()).select_from(model))).scalar_one()
    return count == 0


async def seed_defaults(session: AsyncSession) -> dict[str, int]:
    """
    Fill each empty table with the default fixtures and flush.

    Tables that already contain rows are left untouched, so running this
    on every startup is safe. Posts and comments are only seeded when
    their parents were seeded in the same call. Returns the number of
    rows inserted per table.
    """
    inserted = {"users": 0, "topics": 0, "posts": 0, "comments": 0}

    users: list[User] = []
    if await _is_empty(session, User):
        users = [User(**data) for data in USERS]
        session.add_all(users)
        inserted["users"] = len(users)

    topics: list[Topic] = []
    if await _is_empty(session, Topic):
        topics = [Topic(**data) for data in TOPICS]
        session.add_all(topics)
        inserted["topics"] = len(topics)
    await session.flush()

    posts: list[Post] = []
    if users and topics and await _is_empty(session, Post):
        posts = [
            Post(topic_id=topics[t].id, user_id=users[u].id, title=title, content=content)
            for t, u, title, content in POSTS
        ]
        session.add_all(posts)
        await session.flush()
        inserted["posts"] = len(posts)

    if posts and await _is_empty(session, Comment):
        comments = [
            Comment(post_id=posts[p].id, user_id=users[u].id, content=content)
            for p, u, content in COMMENTS
        ]
        session.add_all(comments)
        await session.flush()
        inserted["comments"] = len(comments)

    if any(inserted.values()):
        logger.info("Seeded default data: %s", inserted)
    return inserted
