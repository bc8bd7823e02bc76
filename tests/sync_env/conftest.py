"""
동기 환경 테스트 설정
"""

import logging

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from factory_sqlalchemy import Factory, SessionHandler, init_manager
from tests.conftest import FACTORIES_PATH, TestConfig, 데이터베이스_초기화


def db_shutdown(sync_engine_: Engine):
    """데이터베이스 연결 종료"""
    sync_engine_.dispose()
    logging.info("[sync] 데이터베이스 연결 종료")


# ===== 동기 환경용 공통 fixture들 =====


@pytest.fixture(scope="module", autouse=True)
def sync_engine_() -> Engine:
    """동기 엔진 생성 및 초기화"""
    engine_kwargs = TestConfig.get_engine_kwargs("sync")
    sync_engine_ = create_engine(TestConfig.get_database_url("sync"), **engine_kwargs)

    # 데이터베이스 초기화
    데이터베이스_초기화(sync_engine_)

    yield sync_engine_
    db_shutdown(sync_engine_)


@pytest.fixture(scope="module")
def secondary_engine_() -> Engine:
    """secondary 커넥션용 동기 엔진 (별도의 in-memory 데이터베이스)"""
    engine_kwargs = TestConfig.get_engine_kwargs("sync")
    secondary_engine_ = create_engine(TestConfig.get_database_url("sync"), **engine_kwargs)

    데이터베이스_초기화(secondary_engine_)

    yield secondary_engine_
    db_shutdown(secondary_engine_)


@pytest.fixture(scope="function", autouse=True)
def session_factory_(sync_engine_: Engine) -> sessionmaker:
    """동기 세션 팩토리 생성"""
    return sessionmaker(sync_engine_, expire_on_commit=False)


@pytest.fixture(scope="function", autouse=True)
def scoped_session_(session_factory_: sessionmaker) -> scoped_session:
    """스코프된 세션 생성"""
    session = scoped_session(session_factory_)
    session.begin()
    yield session

    session.rollback()
    session.remove()


@pytest.fixture(scope="function", autouse=True)
def session_start_up(scoped_session_: scoped_session) -> None:
    """세션 매니저 초기화"""
    handler = SessionHandler()
    handler.clear()
    init_manager(scoped_session_)
    logging.info("[sync] 세션 매니저 초기화 완료")

    yield
    handler.clear()


@pytest.fixture(scope="function")
def session_(scoped_session_: scoped_session, session_start_up) -> Session:
    """기본 커넥션의 현재 세션"""
    return scoped_session_()


@pytest.fixture(scope="function")
def secondary_session_(secondary_engine_: Engine, session_start_up) -> Session:
    """secondary 커넥션 세션 생성 및 등록"""
    session = scoped_session(sessionmaker(secondary_engine_, expire_on_commit=False))
    session.begin()
    init_manager(session, "secondary")
    logging.info("[sync] secondary 세션 매니저 초기화 완료")

    yield session()

    session.rollback()
    session.remove()


@pytest.fixture(scope="function")
def factory_() -> Factory:
    """tests/factories 의 정의를 불러온 팩토리 레지스트리"""
    return Factory.construct(path=FACTORIES_PATH, seed=1234)
