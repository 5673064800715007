# ============================================================================
# Seed Demo Data
# ============================================================================
"""
Script to seed a demo professor, student, two articles and one assignment.

Usage:
    python scripts/seed_demo.py

Login credentials afterwards:
    Professor: professor@example.com / professor123
    Student:   student@example.com / student123
"""

import asyncio
import sys
import os
from datetime import timedelta

# Ensure the app directory is in the python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from app.core.database import async_session_maker, engine, Base, utcnow
from app.core.security import get_password_hash
from app.models import User, UserRole, Article, Assignment

USERS = [
    {"email": "professor@example.com", "password": "professor123",
     "first_name": "Dr. Jane", "last_name": "Smith", "role": UserRole.PROFESSOR},
    {"email": "student@example.com", "password": "student123",
     "first_name": "John", "last_name": "Doe", "role": UserRole.STUDENT},
]

ARTICLES = [
    {
        "title": "Habitat Fragmentation and Landscape Connectivity",
        "author": "Fahrig, L.",
        "year": 2003,
        "learning_objectives": [
            "Define habitat fragmentation and its components.",
            "Explain the difference between structural and functional connectivity.",
            "Analyze the effects of fragmentation on species persistence.",
        ],
        "key_concepts": ["Habitat loss", "Patch size", "Edge effects", "Corridors", "Matrix quality"],
        "content": (
            "Abstract: Habitat fragmentation is the process by which large and continuous habitats "
            "get divided into smaller, more isolated patches. It has two main components: a reduction "
            "in the total amount of habitat, and a change in the spatial configuration of what remains. "
            "Habitat loss has large, consistently negative effects on biodiversity, while fragmentation "
            "per se has much weaker effects that can be positive or negative.\n\n"
            "Results: Across more than 100 studies, habitat amount was the single most important "
            "predictor of species response. Effects of patch size and isolation were weaker and more "
            "variable, and some edge specialists benefited from fragmentation.\n\n"
            "Discussion: Conservation should focus on stopping habitat loss and restoring large "
            "blocks of habitat; connectivity matters, but its benefits are context-dependent."
        ),
    },
    {
        "title": "Scale Concepts in Landscape Ecology",
        "author": "Wiens, J. A.",
        "year": 1989,
        "learning_objectives": [
            "Define scale, grain, and extent.",
            "Explain why ecological patterns are scale-dependent.",
            "Apply scale concepts to a research question.",
        ],
        "key_concepts": ["Scale", "Grain", "Extent", "Hierarchy Theory", "Extrapolation"],
        "content": (
            "Abstract: Scale is a fundamental concept in ecology, yet its treatment is often implicit. "
            "Grain is the finest resolution of the data and extent is the overall size or duration of "
            "the study. A pattern apparent at one scale may disappear or reverse at another, so "
            "researchers must justify their choice of scale and be cautious when extrapolating."
        ),
    },
]

RUBRIC = {"criteria": [
    {"name": "Question Quality", "max_points": 25,
     "description": "Asks thoughtful, probing questions rather than passively accepting AI responses."},
    {"name": "Critical Thinking", "max_points": 25,
     "description": "Challenges AI claims, identifies gaps, and asks for evidence."},
    {"name": "Concept Application", "max_points": 20,
     "description": "Applies concepts from the article to real-world examples."},
    {"name": "Citation Usage", "max_points": 15,
     "description": "References specific parts of the article in the discussion."},
    {"name": "AI Literacy", "max_points": 15,
     "description": "Recognizes AI limitations and verifies claims."},
]}

async def seed_demo():
    """Idempotent: existing users, articles and assignments are left as they are"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        users = {}
        for data in USERS:
            result = await db.execute(select(User).where(User.email == data["email"]))
            user = result.scalar_one_or_none()
            if user:
                print(f"  [SKIP] User '{data['email']}' already exists.")
            else:
                user = User(
                    email=data["email"],
                    password_hash=get_password_hash(data["password"]),
                    first_name=data["first_name"],
                    last_name=data["last_name"],
                    role=data["role"],
                    is_active=True,
                )
                db.add(user)
                await db.flush()
                print(f"  [CREATE] {data['role'].value.title()} '{data['email']}' created.")
            users[data["role"]] = user

        professor = users[UserRole.PROFESSOR]
        articles = []
        for data in ARTICLES:
            result = await db.execute(select(Article).where(Article.title == data["title"]))
            article = result.scalar_one_or_none()
            if article:
                print(f"  [SKIP] Article '{data['title']}' already exists.")
            else:
                article = Article(**data, is_public=True, uploaded_by_id=professor.id)
                db.add(article)
                await db.flush()
                print(f"  [CREATE] Article '{data['title']}' created.")
            articles.append(article)

        title = "Critical Analysis: Habitat Fragmentation"
        result = await db.execute(select(Assignment).where(Assignment.title == title))
        if result.scalar_one_or_none():
            print(f"  [SKIP] Assignment '{title}' already exists.")
        else:
            db.add(Assignment(
                professor_id=professor.id,
                article_id=articles[0].id,
                title=title,
                description=(
                    "Read the Fahrig (2003) article and discuss it with Eco. Focus on distinguishing "
                    "habitat loss from fragmentation per se."
                ),
                due_date=utcnow() + timedelta(days=7),
                grading_rubric=RUBRIC,
            ))
            print(f"  [CREATE] Assignment '{title}' created.")

        await db.commit()

    await engine.dispose()
    print("\nDemo seeding completed successfully!")
    print("Professor: professor@example.com / professor123")
    print("Student: student@example.com / student123")

if __name__ == "__main__":
    asyncio.run(seed_demo())
