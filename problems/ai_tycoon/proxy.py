"""Public demand proxy for the AI Tycoon problem.

The proxy is the only continuously updated demand signal visible to the
player and the advisor. It is an exponentially smoothed average of recent
sales, corrupted with Gaussian noise:
    proxy' = max(0, a * proxy + (1 - a) * mean(last k sales) + N(0, sigma))
"""

from typing import Sequence, Tuple, Union
from functools import partial
from jaxtyping import Array, Float, Int, PRNGKeyArray
import jax
import jax.numpy as jnp

from .model import TycoonConfig


# Type aliases
SalesWindow = Int[Array, "window"]  # most recent sale counts, oldest first
Key = PRNGKeyArray


class PublicProxyTracker:
    """Noisy exponentially smoothed estimate of market temperature.

    Recent sales are held in a fixed-size window plus a fill count so the
    update stays jittable while the history is shorter than the window.

    Example:
        >>> tracker = PublicProxyTracker(TycoonConfig())
        >>> window, count = tracker.empty_window()
        >>> window, count = tracker.record(window, count, 42)
        >>> proxy = tracker.update(jax.random.PRNGKey(0), window, count, 50.0)
    """

    def __init__(self, config: TycoonConfig) -> None:
        """Initialize tracker.

        Args:
            config: Problem configuration (smoothing, noise, window size).
        """
        self.config = config

    def empty_window(self) -> Tuple[SalesWindow, Int[Array, ""]]:
        """Window with no recorded periods."""
        return (
            jnp.zeros((self.config.proxy_window,), dtype=jnp.int32),
            jnp.array(0, dtype=jnp.int32),
        )

    @partial(jax.jit, static_argnums=(0,))
    def record(
        self,
        window: SalesWindow,
        count: Int[Array, ""],
        sold: Int[Array, ""],
    ) -> Tuple[SalesWindow, Int[Array, ""]]:
        """Append one period's sales, dropping the oldest entry when full."""
        window = jnp.roll(window, -1).at[-1].set(jnp.asarray(sold, dtype=jnp.int32))
        return window, jnp.minimum(count + 1, self.config.proxy_window)

    @partial(jax.jit, static_argnums=(0,))
    def recent_mean(self, window: SalesWindow, count: Int[Array, ""]) -> Float[Array, ""]:
        """Mean of the last ``count`` recorded sales (0 when nothing is recorded)."""
        size = self.config.proxy_window
        valid = jnp.arange(size) >= size - count
        total = jnp.sum(jnp.where(valid, window, 0))
        return total / jnp.maximum(count, 1)

    @partial(jax.jit, static_argnums=(0,))
    def update(
        self,
        key: Key,
        window: SalesWindow,
        count: Int[Array, ""],
        current_proxy: Float[Array, ""],
    ) -> Float[Array, ""]:
        """Blend the proxy towards recent sales and add noise.

        Called once per period, after that period's sales are recorded.

        Args:
            key: Random key for the corruption noise.
            window: Recent sales window (oldest first).
            count: Number of valid entries at the end of the window.
            current_proxy: Proxy value before the update.

        Returns:
            New proxy value, floored at zero.
        """
        a = self.config.proxy_smoothing
        noise = jax.random.normal(key) * self.config.proxy_noise_std
        blended = a * current_proxy + (1.0 - a) * self.recent_mean(window, count)
        return jnp.maximum(0.0, blended + noise)

    def update_from_history(
        self,
        key: Key,
        recent_sales: Union[Sequence[int], Int[Array, "n"]],
        current_proxy: Float[Array, ""],
    ) -> Float[Array, ""]:
        """Update from a plain sales history (host side convenience).

        Args:
            key: Random key for the corruption noise.
            recent_sales: Ordered sale counts, oldest first; must be non-empty.
            current_proxy: Proxy value before the update.

        Returns:
            New proxy value, floored at zero.
        """
        history = jnp.asarray(recent_sales, dtype=jnp.int32).reshape(-1)
        if history.shape[0] == 0:
            raise ValueError("recent_sales must contain at least one period")
        window, count = self.empty_window()
        for sold in history[-self.config.proxy_window:]:
            window, count = self.record(window, count, sold)
        return self.update(key, window, count, jnp.asarray(current_proxy, dtype=jnp.float32))
