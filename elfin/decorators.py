from functools import wraps
from typing import Union

from elfin.actions import Action, action_type


def handles(*types: Union[str, type]):
    """Decorator to restrict a reducer to the given action types.

    Any other action hands the fragment back untouched. Types may be
    strings or ``Action`` subclasses.
    """
    wanted = frozenset(t.type if isinstance(t, type) and issubclass(t, Action) else t for t in types)

    def decorator(func):
        @wraps(func)
        def wrapper(fragment, action):
            if action_type(action) not in wanted:
                return fragment
            return func(fragment, action)

        wrapper.handles = wanted
        return wrapper

    return decorator
