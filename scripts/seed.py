"""Seed the blog database with demo posts."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta

from app.database import engine, async_session, Base
from app.models import Post
from app.services.post_service import slugify

CATEGORIES = ["engineering", "product", "design", "company", "events"]
TOPICS = ["caching", "object storage", "slugs", "async python", "postgres",
          "image pipelines", "pagination", "deployments"]


async def seed(count: int, reset: bool):
    print(f"Seeding {count} posts{' (reset)' if reset else ''}")
    start = time.perf_counter()

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        now = datetime.now(timezone.utc)
        for i in range(count):
            topic = random.choice(TOPICS)
            title = f"Notes on {topic} #{i}"
            session.add(Post(
                title=title,
                slug=slugify(title),
                content=f"<p>Everything we learned about {topic}.</p>" * 5,
                excerpt=f"A short read about {topic}." if random.random() > 0.3 else None,
                description=f"Post {i} in the {topic} series.",
                category=random.choice(CATEGORIES),
                author_name="Site Team",
                created_at=now - timedelta(hours=i),
            ))
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"Seeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--count", type=int, default=12, help="Number of posts to create")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate tables first")
    args = parser.parse_args()
    asyncio.run(seed(count=args.count, reset=args.reset))


if __name__ == "__main__":
    main()
