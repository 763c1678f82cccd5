# core/simulator.py
# mypy: disable-error-code="no-any-return"
from __future__ import annotations

from typing import Any, Protocol, Tuple

import jax

PRNGKey = jax.Array  # alias for readability
Array = jax.Array


class Model(Protocol):
    def reset(self, *, key: PRNGKey) -> Any: ...
    def step(self, state: Any, key: PRNGKey) -> Tuple[Any, Any]: ...


def rollout(model: Model, horizon: int, *, key: PRNGKey) -> Tuple[Any, Any]:
    """Scan `model.step` for `horizon` periods; outputs are stacked on axis 0.

    Key schedule: one split for the reset, then one sub-key per period.
    """

    def _body(carry: tuple[Any, PRNGKey], _: None) -> tuple[tuple[Any, PRNGKey], Any]:
        state, k = carry
        k, sub = jax.random.split(k)
        state, out = model.step(state, sub)
        return (state, k), out

    key, init_key = jax.random.split(key)
    state = model.reset(key=init_key)
    (state, _), outputs = jax.lax.scan(_body, (state, key), xs=None, length=horizon)
    return state, outputs
