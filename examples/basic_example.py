"""
Basic example of building a GraphQL schema from plain Python classes with classql.

This example demonstrates:
- Declaring an ID alias, an enum, an input class and object types
- Deriving fields from annotations, properties and methods
- Binding query, mutation and subscription roots to live objects
- Executing queries and consuming a subscription
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional

from classql import BuilderConfig, SchemaBuilder, SchemaDsl


class UserId:
    def __init__(self, raw: str):
        self.raw = raw

    def __eq__(self, other):
        return isinstance(other, UserId) and other.raw == self.raw

    def __hash__(self):
        return hash(self.raw)

    def __str__(self):
        return self.raw


class Role(Enum):
    ADMIN = 'admin'
    MEMBER = 'member'


@dataclass
class NewUser:
    name: str
    email: str
    role: Role = Role.MEMBER


@dataclass
class Post:
    title: str
    content: Optional[str]
    created_at: datetime


@dataclass
class User:
    """A registered user."""

    id: UserId
    name: str
    email: str
    role: Role
    posts: List[Post] = field(default_factory=list)

    @property
    def post_count(self) -> int:
        return len(self.posts)

    def latest_posts(self, limit: int = 5) -> List[Post]:
        return sorted(self.posts, key=lambda p: p.created_at, reverse=True)[:limit]


class UserStore:
    def __init__(self):
        self.users: Dict[UserId, User] = {}
        self.events: 'asyncio.Queue[User]' = asyncio.Queue()

    def add(self, user: User) -> User:
        self.users[user.id] = user
        self.events.put_nowait(user)
        return user


class Query:
    def __init__(self, store: UserStore):
        self.store = store

    def users(self, role: Optional[Role] = None) -> List[User]:
        return [u for u in self.store.users.values() if role is None or u.role is role]

    async def user(self, id: UserId) -> Optional[User]:
        await asyncio.sleep(0)
        return self.store.users.get(id)


class Mutation:
    def __init__(self, store: UserStore):
        self.store = store

    def create_user(self, user: NewUser) -> User:
        new_id = UserId(str(len(self.store.users) + 1))
        return self.store.add(User(new_id, user.name, user.email, user.role))


class Subscription:
    def __init__(self, store: UserStore):
        self.store = store

    async def user_created(self, count: int = 1) -> AsyncIterator[User]:
        for _ in range(count):
            yield await self.store.events.get()


def build_schema(store: UserStore):
    builder = SchemaBuilder(config=BuilderConfig(auto_camel_case=True))

    @builder.block
    def declarations(s: SchemaDsl):
        s.id(UserId)
        s.enum(Role)
        s.input(NewUser)
        s.type(Post, lambda t: t.derive())
        with s.type(User) as t:
            t.derive()
            t.describe('post_count', 'Number of posts written by the user')
        s.query(Query(store))
        s.mutation(Mutation(store))
        s.subscription(Subscription(store))

    return builder.build()


async def main():
    logging.basicConfig(level=logging.INFO)
    store = UserStore()
    store.add(User(UserId('1'), 'Ada', 'ada@example.com', Role.ADMIN, [
        Post('Hello', 'First post', datetime(2024, 1, 1)),
        Post('Again', None, datetime(2024, 2, 1)),
    ]))
    schema = build_schema(store)
    print(schema.as_str())

    result = await schema.execute('{ users { id name role postCount latestPosts(limit: 1) { title createdAt } } }')
    print(result.data)

    events = await schema.subscribe('subscription { userCreated { id name } }')
    result = await schema.execute(
        'mutation($user: NewUser!) { createUser(user: $user) { id name role } }',
        variable_values={'user': {'name': 'Grace', 'email': 'grace@example.com'}},
    )
    print(result.data)
    # the initial user was queued before the subscription started
    async for event in events:
        print(event.data)


if __name__ == '__main__':
    asyncio.run(main())
