"""Exceptions raised while composing connector profile plans."""


class ConfigurationError(ValueError):
    """Structurally invalid composition input.

    Raised before any entity is created, with ``field`` naming the offending input.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class CycleError(ValueError):
    """An ordering edge would make the provisioning graph cyclic."""

    def __init__(self, dependent: str, dependency: str):
        self.dependent = dependent
        self.dependency = dependency
        msg = (
            f"Ordering '{dependent}' after '{dependency}' would create a cycle in the "
            "provisioning graph"
        )
        super().__init__(msg)
