"""
비동기 환경 테스트 설정
"""

import logging

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from factory_sqlalchemy import Factory
from tests.conftest import FACTORIES_PATH, ORMBase, TestConfig

# ===== 비동기 환경용 공통 fixture들 =====


@pytest_asyncio.fixture(scope="function", autouse=True)
async def async_engine_() -> AsyncEngine:
    """비동기 엔진 생성 및 초기화"""
    engine_kwargs = TestConfig.get_engine_kwargs("async")
    async_engine_ = create_async_engine(TestConfig.get_database_url("async"), **engine_kwargs)

    # 데이터베이스 초기화
    async with async_engine_.begin() as conn:
        await conn.run_sync(ORMBase.metadata.create_all)

    yield async_engine_
    await async_engine_.dispose()


@pytest.fixture(scope="function", autouse=True)
def session_factory_(async_engine_: AsyncEngine) -> async_sessionmaker:
    """비동기 세션 팩토리 생성"""
    return async_sessionmaker(async_engine_, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def transaction_async(session_factory_: async_sessionmaker) -> AsyncSession:
    """비동기 트랜잭션 세션 생성"""
    async with session_factory_() as sess:
        await sess.begin()
        logging.info("[async] 트랜잭션 시작")

        yield sess

        await sess.rollback()


@pytest.fixture(scope="function")
def factory_() -> Factory:
    """tests/factories 의 정의를 불러온 팩토리 레지스트리"""
    return Factory.construct(path=FACTORIES_PATH, seed=1234)
