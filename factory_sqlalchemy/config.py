from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Union

from sqlalchemy.orm import Session, scoped_session, sessionmaker

from factory_sqlalchemy.exceptions import SessionNotConfiguredError
from factory_sqlalchemy.utils.common import get_logger

DEFAULT_CONNECTION = "default"

SessionSource = Union[scoped_session, sessionmaker, Session]

# 기본 커넥션에 대해 등록된 세션보다 우선 사용되는 세션
session_context: ContextVar[Session | None] = ContextVar("session_context", default=None)


class SessionManager:
    """커넥션 하나에 대응하는 세션 공급자.

    ``scoped_session`` 을 그대로 사용하고, ``sessionmaker`` 는 ``scoped_session`` 으로 감싸서
    같은 스코프 안에서는 항상 같은 세션을 돌려줍니다. ``Session`` 인스턴스는 그대로 사용합니다.
    """

    def __init__(self, source: SessionSource):
        if isinstance(source, sessionmaker):
            source = scoped_session(source)
        self._source = source

    def get_session(self) -> Session:
        if isinstance(self._source, scoped_session):
            return self._source()
        return self._source


class SessionHandler:
    """커넥션 이름별 SessionManager 를 보관하는 싱글톤"""

    _instance: SessionHandler | None = None
    _managers: dict[str, SessionManager]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._managers = {}
        return cls._instance

    def set_manager(self, source: SessionSource, connection: str = DEFAULT_CONNECTION) -> None:
        self._managers[connection] = SessionManager(source)

    def get_manager(self, connection: str = DEFAULT_CONNECTION) -> SessionManager:
        try:
            return self._managers[connection]
        except KeyError:
            raise SessionNotConfiguredError(connection) from None

    def has_manager(self, connection: str) -> bool:
        return connection in self._managers

    def get_session(self, connection: str | None = None) -> Session:
        """커넥션 이름에 해당하는 세션을 반환합니다.

        Args:
            connection (str | None): 커넥션 이름. None 이면 기본 커넥션

        Returns:
            Session: 해당 커넥션의 세션. 기본 커넥션은 session_context 에 설정된 세션을 우선합니다.

        Raises:
            SessionNotConfiguredError: 등록되지 않은 커넥션인 경우
        """
        connection = connection or DEFAULT_CONNECTION
        if connection == DEFAULT_CONNECTION:
            current = session_context.get()
            if current is not None:
                return current
        return self.get_manager(connection).get_session()

    def clear(self) -> None:
        self._managers.clear()


def init_manager(source: SessionSource, connection: str = DEFAULT_CONNECTION) -> None:
    SessionHandler().set_manager(source, connection)
    get_logger().debug(f"Session manager registered for connection [{connection}]")


@contextmanager
def scoped_session_context(session: Session) -> Iterator[Session]:
    """블록 안에서 기본 커넥션의 세션을 지정한 세션으로 바꿉니다."""
    token = session_context.set(session)
    try:
        yield session
    finally:
        session_context.reset(token)
