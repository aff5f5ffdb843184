import jax
import jax.numpy as jnp
import numpy as np
import pytest

from config import create_config
from oracle import extract_training_data
from parser_model import FlaxClassifier, ParserModel
from run import build_model, get_minibatches, stack_patterns, train_model
from schema import Pattern


def test_model_output_shape():
  model = ParserModel(hidden_sizes=(8, 4), n_classes=4)
  params = model.init(jax.random.PRNGKey(0), jnp.ones((1, 10)), train=False)["params"]
  logits = model.apply({"params": params}, jnp.ones((5, 10)), train=False)
  assert logits.shape == (5, 4)


def test_classifier_returns_one_score_per_action():
  model = ParserModel(hidden_sizes=(8,), n_classes=3)
  params = model.init(jax.random.PRNGKey(0), jnp.ones((1, 6)), train=False)["params"]
  classifier = FlaxClassifier(model, params)

  scores = classifier.predict(np.linspace(0, 1, 6, dtype=np.float32))
  assert scores.shape == (3,)
  assert scores.sum() == pytest.approx(1.0, abs=1e-5)
  np.testing.assert_allclose(scores, classifier.predict(np.linspace(0, 1, 6)))


def test_minibatches_cover_every_row():
  X = np.arange(10).reshape(10, 1)
  y = np.arange(10)
  seen = []
  for bx, by in get_minibatches(X, y, 3, rng=np.random.default_rng(0)):
    assert len(bx) <= 3
    seen.extend(by.tolist())
  assert sorted(seen) == list(range(10))


def test_stack_patterns_rejects_mixed_lengths():
  patterns = [
    Pattern(np.zeros(3), np.array([1.0, 0.0, 0.0])),
    Pattern(np.zeros(4), np.array([1.0, 0.0, 0.0])),
  ]
  with pytest.raises(ValueError):
    stack_patterns(patterns)
  with pytest.raises(ValueError):
    stack_patterns([])


def test_training_reduces_loss(projective_sentence, three_tokens, vocab):
  config = create_config(hidden_sizes=(16,), epochs=20, batch_size=8, learning_rate=0.01)
  result = extract_training_data([projective_sentence, three_tokens], vocab, config)

  model, params, history = train_model(result.patterns, config)
  assert len(history["train_loss"]) == config.epochs
  assert history["train_loss"][-1] < history["train_loss"][0]

  classifier = FlaxClassifier(build_model(config), params)
  assert classifier.predict(result.patterns[0].input).shape == (3,)
  assert isinstance(model, ParserModel)


def test_training_checks_action_count(three_tokens, vocab):
  config = create_config(hidden_sizes=(4,), epochs=1)
  patterns = extract_training_data([three_tokens], vocab, config).patterns
  with pytest.raises(ValueError):
    train_model(patterns, create_config(hidden_sizes=(4,), epochs=1, use_swap=True))
