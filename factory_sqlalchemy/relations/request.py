from __future__ import annotations

from collections.abc import Callable

from factory_sqlalchemy.exceptions import RelationNotFoundError
from factory_sqlalchemy.relations.orm import has_relationship, related_model
from factory_sqlalchemy.utils.common import is_model, is_model_collection


class RelationRequest:
    """``with_()`` 인자 하나 묶음을 해석한 관계 생성 요청.

    인자 해석 규칙:
        - ``int``: 생성할 개수
        - 모델 인스턴스 또는 모델 인스턴스 리스트: 팩토리 대신 사용할 인스턴스
        - callable: 관계 빌더를 받아 커스터마이즈하는 클로저
        - 첫 번째 세그먼트가 모델의 관계인 ``str``: 관계 경로 (``"divisions.manager"``)
        - 그 외 ``str``: 상태(state) 이름

    Attributes:
        model (type): 요청의 기준이 되는 모델 클래스
        batch (int): 관계 배치 번호
        path (str | None): 점(.)으로 구분된 관계 경로
        amount (int | None): 생성할 개수
        builder (Callable | None): 빌더 커스터마이즈 클로저
        instances (list | None): 미리 주어진 모델 인스턴스
        states (list[str]): 적용할 상태 이름
    """

    def __init__(self, model: type, batch: int, args: tuple | list = ()):
        self.model = model
        self.batch = batch
        self.path: str | None = None
        self.amount: int | None = None
        self.builder: Callable | None = None
        self.instances: list | None = None
        self.states: list[str] = []

        self._parse_args(args)
        self._fail_on_missing_relation(args)

        # 개수 없이 인스턴스만 주어지면 주어진 인스턴스를 모두 사용
        if self.instances and self.amount is None:
            self.amount = len(self.instances)

    def _parse_args(self, args: tuple | list) -> None:
        for arg in args:
            if isinstance(arg, int) and not isinstance(arg, bool):
                self.amount = arg
            elif is_model(arg):
                self.instances = [arg]
            elif is_model_collection(arg):
                self.instances = list(arg)
            elif isinstance(arg, str):
                if self._is_valid_relation(arg):
                    self.path = arg
                else:
                    self.states.append(arg)
            elif callable(arg):
                self.builder = arg
            else:
                raise TypeError(f"Unsupported relation argument: {arg!r}")

    def _is_valid_relation(self, path: str) -> bool:
        return has_relationship(self.model, path.split(".")[0])

    def _fail_on_missing_relation(self, args: tuple | list) -> None:
        if not self.path:
            raise RelationNotFoundError(self.model, tuple(args))

    @property
    def relation_name(self) -> str:
        return self.path.split(".")[0]

    @property
    def nested_path(self) -> str:
        return ".".join(self.path.split(".")[1:])

    @property
    def related_model(self) -> type:
        return related_model(self.model, self.relation_name)

    def has_nesting(self) -> bool:
        return "." in self.path

    def create_nested_request(self) -> RelationRequest:
        """관계 경로의 첫 세그먼트를 떼어낸 요청을 관계 대상 모델 기준으로 만듭니다."""
        request = RelationRequest(self.related_model, self.batch, [self.nested_path])
        request.amount = self.amount
        request.builder = self.builder
        request.instances = self.instances
        request.states = list(self.states)
        return request

    def __repr__(self) -> str:
        return (
            f"RelationRequest({self.model.__name__}, path={self.path!r}, batch={self.batch}, "
            f"amount={self.amount}, states={self.states})"
        )
