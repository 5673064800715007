# ============================================================================
# Test Configuration & Fixtures
# ============================================================================
import pytest
import asyncio
from typing import AsyncGenerator, List, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.core.database import Base, get_db
from app.core.exceptions import AIUnavailableError
from app.core.redis import TurnLocks
from app.core.security import get_password_hash, create_access_token
from app.api.deps import get_turn_generator, get_article_analyzer
from app.models import User, UserRole, Article, Assignment
from app.services.tutor import TurnGenerator, TutorReply, Source, TutoringSessionController


# ============================================================================
# Fakes
# ============================================================================
class FakeTurnGenerator(TurnGenerator):
    """Deterministic tutor that records what it was asked"""

    def __init__(self, fail: bool = False, sources: Optional[List[Source]] = None):
        self.fail = fail
        self.sources = sources or []
        self.calls = []

    async def generate_turn(self, history, user_text, stage, article):
        self.calls.append({
            "history": list(history),
            "user_text": user_text,
            "stage": stage,
            "article": article,
        })
        # Yield so concurrent turns can interleave
        await asyncio.sleep(0)
        if self.fail:
            raise AIUnavailableError("model is down")
        return TutorReply(text=f"[{stage.value}] What makes you say that?", sources=list(self.sources))


class FakeArticleAnalyzer:
    async def analyze(self, text: str):
        return {
            "title": "Habitat Fragmentation",
            "author": "Fahrig, L.",
            "year": 2003,
            "learning_objectives": ["Separate fragmentation from habitat loss"],
            "key_concepts": ["fragmentation", "habitat loss"],
        }


# ============================================================================
# Database
# ============================================================================
@pytest.fixture(scope="function")
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite database per test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()

@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session

@pytest.fixture
def fake_generator() -> FakeTurnGenerator:
    return FakeTurnGenerator()

@pytest.fixture
def turn_locks() -> TurnLocks:
    return TurnLocks()

@pytest.fixture
def controller(db_session, fake_generator, turn_locks) -> TutoringSessionController:
    return TutoringSessionController(db_session, fake_generator, locks=turn_locks)

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, fake_generator) -> AsyncGenerator[AsyncClient, None]:
    """Test client with overridden database and AI dependencies"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_turn_generator] = lambda: fake_generator
    app.dependency_overrides[get_article_analyzer] = lambda: FakeArticleAnalyzer()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Users, Articles & Assignments
# ============================================================================
async def make_user(db: AsyncSession, email: str, role: UserRole, first_name: str = "Test") -> User:
    user = User(
        email=email,
        password_hash=get_password_hash("password123"),
        first_name=first_name,
        last_name="User",
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user

def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
async def professor(db_session) -> User:
    return await make_user(db_session, "prof@university.edu", UserRole.PROFESSOR, "Ada")

@pytest.fixture
async def other_professor(db_session) -> User:
    return await make_user(db_session, "other.prof@university.edu", UserRole.PROFESSOR, "Grace")

@pytest.fixture
async def student(db_session) -> User:
    return await make_user(db_session, "student@university.edu", UserRole.STUDENT, "Tendai")

@pytest.fixture
async def other_student(db_session) -> User:
    return await make_user(db_session, "classmate@university.edu", UserRole.STUDENT, "Rudo")

@pytest.fixture
async def article(db_session, professor) -> Article:
    article = Article(
        title="Effects of Habitat Fragmentation on Biodiversity",
        author="Fahrig, L.",
        year=2003,
        content="Habitat fragmentation is usually defined as a process during which a large "
                "expanse of habitat is transformed into a number of smaller patches.",
        learning_objectives=["Distinguish fragmentation from habitat loss"],
        key_concepts=["fragmentation", "habitat loss", "patch size"],
        is_public=True,
        uploaded_by_id=professor.id,
    )
    db_session.add(article)
    await db_session.commit()
    return article

@pytest.fixture
async def assignment(db_session, professor, article) -> Assignment:
    assignment = Assignment(
        professor_id=professor.id,
        article_id=article.id,
        title="Week 3: Fragmentation",
        description="Discuss the article with Eco",
        grading_rubric={"criteria": [
            {"name": "Comprehension", "max_points": 10, "description": ""},
            {"name": "Evidence", "max_points": 10, "description": ""},
        ]},
    )
    db_session.add(assignment)
    await db_session.commit()
    return assignment
