"""
공통 테스트 설정 및 모델 정의
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from sqlalchemy import Column, ForeignKey, Table
from sqlalchemy.orm import mapped_column, relationship
from sqlalchemy.orm.attributes import Mapped
from sqlalchemy.orm.decl_api import DeclarativeBase
from sqlalchemy.sql.sqltypes import Boolean, DateTime, Integer, String

# 로깅 설정
logging.basicConfig(level=logging.INFO)

FACTORIES_PATH = Path(__file__).parent / "factories"


class ORMBase(DeclarativeBase):
    """모든 ORM 모델의 베이스 클래스"""

    pass


# ===== belongs-to-many pivot 테이블 =====

division_employees = Table(
    "division_employees",
    ORMBase.metadata,
    Column("division_id", ForeignKey("divisions.id"), primary_key=True),
    Column("user_id", ForeignKey("users.id"), primary_key=True),
    Column("started_at", DateTime, nullable=True),
)


# ===== 관계 테스트 모델들 =====


class User(ORMBase):
    """사용자 모델 - owner, manager, employee 로 사용"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255))


class Company(ORMBase):
    """회사 모델 - belongs-to(owner), has-many(divisions, customers)"""

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    owner_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    owner: Mapped[User | None] = relationship()
    divisions: Mapped[list[Division]] = relationship(back_populates="company", order_by="Division.id")
    customers: Mapped[list[Customer]] = relationship(back_populates="company", order_by="Customer.id")


class Division(ORMBase):
    """부서 모델 - belongs-to(company, manager), belongs-to-many(employees)"""

    __tablename__ = "divisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    active: Mapped[bool] = mapped_column(Boolean, default=False)
    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id"), nullable=True)
    manager_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    company: Mapped[Company | None] = relationship(back_populates="divisions")
    manager: Mapped[User | None] = relationship()
    employees: Mapped[list[User]] = relationship(secondary=division_employees, order_by="User.id")


class Customer(ORMBase):
    """고객 모델 - 상태(state) 테스트용"""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    satisfaction: Mapped[int] = mapped_column(Integer, default=3)
    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id"), nullable=True)

    company: Mapped[Company | None] = relationship(back_populates="customers")


class AuditLog(ORMBase):
    """항상 secondary 커넥션에 저장되는 모델 - 커넥션 테스트용"""

    __tablename__ = "audit_logs"
    __bind_key__ = "secondary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ===== 테스트 환경별 설정 =====


class TestConfig:
    """테스트 환경 설정"""

    @staticmethod
    def get_database_url(env_type: str = "async") -> str:
        """환경별 데이터베이스 URL 반환"""
        if env_type == "async":
            return "sqlite+aiosqlite:///:memory:"
        elif env_type == "sync":
            return "sqlite:///:memory:"
        else:
            raise ValueError(f"지원하지 않는 환경 타입: {env_type}")

    @staticmethod
    def get_engine_kwargs(env_type: str = "async") -> dict:
        """환경별 엔진 설정 반환"""
        if env_type == "async":
            from sqlalchemy.pool.impl import StaticPool

            return {
                "echo": False,
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        elif env_type == "sync":
            return {"echo": False}
        else:
            raise ValueError(f"지원하지 않는 환경 타입: {env_type}")


# ===== 공통 헬퍼 함수들 =====


def 데이터베이스_초기화(engine, base_class=ORMBase):
    """데이터베이스 테이블 생성"""
    with engine.begin() as conn:
        base_class.metadata.create_all(conn)


def 데이터베이스_정리(engine, base_class=ORMBase):
    """데이터베이스 테이블 삭제"""
    with engine.begin() as conn:
        base_class.metadata.drop_all(conn)
