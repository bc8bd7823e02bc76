class FactoryError(Exception):
    """factory_sqlalchemy 에서 발생하는 모든 예외의 베이스 클래스"""


class FactoryNotDefinedError(FactoryError, LookupError):
    def __init__(self, model: type, name: str):
        self.model = model
        self.name = name
        super().__init__(f"Unable to locate factory with name [{name}] [{model.__name__}].")


class UndefinedStateError(FactoryError, ValueError):
    def __init__(self, model: type, state: str):
        self.model = model
        self.state = state
        super().__init__(f"Unable to locate [{state}] state for [{model.__name__}].")


class RelationNotFoundError(FactoryError, AttributeError):
    def __init__(self, model: type, args: tuple):
        self.model = model
        self.args_given = args
        super().__init__(
            f"No matching relations could be found on model [{model.__name__}]. "
            f"Following arguments were given: {', '.join(repr(arg) for arg in args)}"
        )


class SessionNotConfiguredError(FactoryError, RuntimeError):
    def __init__(self, connection: str):
        self.connection = connection
        super().__init__(
            f"No session registered for connection [{connection}]. Call init_manager() before creating models."
        )
