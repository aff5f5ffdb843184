from typing import Sequence

import flax.linen as nn
import jax
import jax.numpy as jnp
import numpy as np


class ParserModel(nn.Module):
  """
  flax implementation of the feed-forward action classifier.
  """

  hidden_sizes: Sequence[int] = (128, 128)
  n_classes: int = 3
  dropout_rate: float = 0.0

  @nn.compact
  def __call__(self, x, train: bool = True):
    """
    x: (batch_size, n_features) - dense feature vectors
    """
    # hidden layers: affine -> relu -> dropout
    # we use xavier uniform (glorot) for weights
    for size in self.hidden_sizes:
      x = nn.Dense(
        features=size,
        kernel_init=nn.initializers.xavier_uniform(),
        bias_init=nn.initializers.zeros,
      )(x)
      x = nn.relu(x)
      x = nn.Dropout(rate=self.dropout_rate, deterministic=not train)(x)

    # output layer (logits, one per action)
    logits = nn.Dense(
      features=self.n_classes,
      kernel_init=nn.initializers.xavier_uniform(),
      bias_init=nn.initializers.zeros,
    )(x)

    return logits


class FlaxClassifier:
  """scores actions for one feature vector with trained ParserModel params."""

  def __init__(self, model: ParserModel, params):
    self.model = model
    self.params = params
    self._apply = jax.jit(lambda p, x: model.apply({"params": p}, x, train=False))

  def predict(self, features: np.ndarray) -> np.ndarray:
    x = jnp.asarray(features, dtype=jnp.float32).reshape((1, -1))
    logits = self._apply(self.params, x)
    return np.asarray(jax.nn.softmax(logits, axis=-1)[0])
