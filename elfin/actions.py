from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Union


@dataclass
class Action:
    """Base class for all actions."""
    type: ClassVar[str]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if 'type' not in cls.__dict__:
            cls.type = cls.__name__.upper()


AnyAction = Union[Action, Mapping[str, Any]]


def action_type(action: AnyAction) -> str:
    """Return the discriminator of a dataclass or mapping action."""
    if isinstance(action, Mapping):
        return action["type"]
    return action.type
