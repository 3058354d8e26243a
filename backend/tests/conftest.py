"""pytest 설정 및 공유 fixture

테스트 인프라:
- 테스트 DB 세션 (기본: SQLite in-memory, TEST_DATABASE_URL로 변경 가능)
- FastAPI AsyncClient
- 인메모리 결재 저장소
- 테스트 프로필 / 인증 헤더 fixture
"""

import os
from collections.abc import AsyncGenerator, Callable
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from eapproval.core.config import Settings
from eapproval.core.database import Base, get_db
from eapproval.core.security import create_access_token
from eapproval.main import app
from eapproval.models.profile import Profile
from eapproval.repositories.approval.mock_repository import (
    MOCK_DATA,
    MOCK_PROFILE_IDS,
    MockApprovalRepository,
    _copy_mock_data,
)
from eapproval.services.authorization import AuthorizationContext

# ===== 테스트 설정 =====


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """테스트용 설정

    환경변수 TEST_DATABASE_URL이 있으면 사용, 없으면 SQLite in-memory 사용
    """
    test_db_url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

    return Settings(
        app_env="test",
        debug=True,
        database_url=test_db_url,
        jwt_secret_key="test-secret-key",
    )


# ===== 데이터베이스 Fixture =====


@pytest.fixture
async def test_engine(test_settings: Settings):
    """테스트용 비동기 엔진

    각 테스트마다 새 엔진 생성 (더 나은 테스트 격리)
    """
    if test_settings.database_url.startswith("sqlite"):
        # in-memory DB는 단일 커넥션을 공유해야 테이블이 유지됨
        engine = create_async_engine(
            test_settings.database_url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(
            test_settings.database_url,
            echo=False,
            poolclass=NullPool,
        )

    # 테이블 생성
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # 테이블 삭제
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """테스트용 DB 세션 (function scope)

    결재 저장소가 트랜잭션 단위로 커밋하므로 테스트마다 테이블을 새로 만든다.
    """
    session_maker = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def override_get_db(db_session: AsyncSession):
    """FastAPI 의존성 오버라이드용 DB fixture"""

    async def _override_get_db():
        yield db_session

    return _override_get_db


# ===== FastAPI Client Fixture =====


@pytest.fixture
async def async_client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """비동기 FastAPI TestClient"""
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ===== 인메모리 저장소 Fixture =====


@pytest.fixture
def mock_data():
    """테스트용 Mock 데이터 (테스트마다 새 복사본)"""
    return _copy_mock_data()


@pytest.fixture
def mock_repo(mock_data) -> MockApprovalRepository:
    """MockApprovalRepository 인스턴스"""
    return MockApprovalRepository(mock_data)


@pytest.fixture
def profile_ids() -> dict[str, UUID]:
    """Mock 프로필 ID (kim, lee, park, choi, jung, admin)"""
    return dict(MOCK_PROFILE_IDS)


@pytest.fixture
def ctx_of(mock_data) -> Callable[[str], AuthorizationContext]:
    """이름으로 AuthorizationContext 생성"""

    def _ctx(name: str) -> AuthorizationContext:
        row = mock_data["profiles"][MOCK_PROFILE_IDS[name]]
        return AuthorizationContext(
            user_id=row["id"], role=row["role"], full_name=row["full_name"]
        )

    return _ctx


# ===== 테스트 데이터 Fixture =====


@pytest.fixture
async def test_profiles(db_session: AsyncSession) -> dict[str, Profile]:
    """DB에 Mock 프로필 저장"""
    profiles = {
        name: Profile(**MOCK_DATA["profiles"][profile_id])
        for name, profile_id in MOCK_PROFILE_IDS.items()
    }
    db_session.add_all(profiles.values())
    await db_session.commit()
    return profiles


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """이름으로 인증 헤더 생성"""

    def _headers(name: str) -> dict[str, str]:
        token = create_access_token(str(MOCK_PROFILE_IDS[name]))
        return {"Authorization": f"Bearer {token}"}

    return _headers
