from __future__ import annotations

import jax.numpy as jnp

SIGMOID_GAIN = 4.9


def steep_sigmoid(x: jnp.ndarray) -> jnp.ndarray:
    return 1.0 / (1.0 + jnp.exp(-SIGMOID_GAIN * x))


def binary_action(outputs: jnp.ndarray, threshold: float = 0.5) -> jnp.ndarray:
    return (outputs > threshold).astype(jnp.float32)
