import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import click
import jax
import jax.numpy as jnp
import numpy as np
import optax
from flax.training import train_state

from config import ParserConfig, Paths, load_config, load_paths
from data_loader import (
  load_conll_data,
  load_patterns,
  load_vocab,
  load_word_vectors,
  new_vocab,
  save_patterns,
  save_subset,
  save_vocab,
)
from evaluation import corpus_statistics, evaluate_corpus
from inference import parse_corpus
from oracle import extract_training_data
from parser_model import FlaxClassifier, ParserModel
from schema import Pattern
from utils import load_params, save_params, save_results

logger = logging.getLogger(__name__)


def build_model(config: ParserConfig) -> ParserModel:
  return ParserModel(
    hidden_sizes=tuple(config.hidden_sizes),
    n_classes=len(config.actions),
    dropout_rate=config.dropout_rate,
  )


def init_train_state(model, rng, input_size: int, learning_rate: float):
  """initializes the Flax TrainState with parameters and optimizer."""
  variables = model.init(rng, jnp.ones((1, input_size), dtype=jnp.float32), train=False)
  params = variables["params"]
  tx = optax.adam(learning_rate)
  return train_state.TrainState.create(apply_fn=model.apply, params=params, tx=tx)


def loss_fn(params, batch_x, batch_y, model_apply_fn, dropout_rng):
  """
  pure loss function.
  batch_x: (batch_size, n_features)
  batch_y: (batch_size, n_actions) - one-hot gold actions
  """
  logits = model_apply_fn(
    {"params": params}, batch_x, train=True, rngs={"dropout": dropout_rng}
  )
  loss = optax.softmax_cross_entropy(logits, batch_y)
  return jnp.mean(loss)


@jax.jit
def train_step(state, batch_x, batch_y, dropout_rng):
  """updates model parameters via gradient descent."""
  grad_fn = jax.value_and_grad(loss_fn)
  loss, grads = grad_fn(state.params, batch_x, batch_y, state.apply_fn, dropout_rng)
  state = state.apply_gradients(grads=grads)
  return state, loss


def get_minibatches(X, y, batch_size: int, shuffle: bool = True, rng=None):
  """
  yields slices of data as minibatches.
  """
  data_size = len(X)
  indices = np.arange(data_size)
  if shuffle:
    (rng or np.random.default_rng()).shuffle(indices)

  for start_idx in range(0, data_size, batch_size):
    end_idx = min(start_idx + batch_size, data_size)
    batch_indices = indices[start_idx:end_idx]
    yield X[batch_indices], y[batch_indices]


def stack_patterns(patterns: Sequence[Pattern]) -> Tuple[np.ndarray, np.ndarray]:
  """fixed-length invariant is enforced here, the file does not describe it."""
  if not patterns:
    raise ValueError("no training patterns")
  input_size = patterns[0].input.shape[0]
  output_size = patterns[0].output.shape[0]
  for i, p in enumerate(patterns):
    if p.input.shape[0] != input_size or p.output.shape[0] != output_size:
      raise ValueError(
        f"pattern {i} has shape ({p.input.shape[0]}, {p.output.shape[0]}), "
        f"expected ({input_size}, {output_size})"
      )
  X = np.stack([p.input for p in patterns]).astype(np.float32)
  y = np.stack([p.output for p in patterns]).astype(np.float32)
  return X, y


def train_model(
  patterns: Sequence[Pattern], config: ParserConfig
) -> Tuple[ParserModel, dict, Dict[str, List[float]]]:
  X_train, y_train = stack_patterns(patterns)
  if y_train.shape[1] != len(config.actions):
    raise ValueError(
      f"patterns encode {y_train.shape[1]} actions, config expects {len(config.actions)}"
    )

  model = build_model(config)
  rng = jax.random.PRNGKey(config.seed)
  model_rng, dropout_rng = jax.random.split(rng)
  state = init_train_state(model, model_rng, X_train.shape[1], config.learning_rate)
  shuffle_rng = np.random.default_rng(config.seed)

  logger.info(
    "starting training with %d instances of size %d", X_train.shape[0], X_train.shape[1]
  )
  metrics = defaultdict(list)

  for epoch in range(1, config.epochs + 1):
    epoch_losses = []

    for batch_x, batch_y in get_minibatches(
      X_train, y_train, config.batch_size, rng=shuffle_rng
    ):
      _, dropout_rng = jax.random.split(dropout_rng)
      state, loss = train_step(
        state, jnp.asarray(batch_x), jnp.asarray(batch_y), dropout_rng
      )
      epoch_losses.append(float(loss))

    avg_loss = float(np.mean(epoch_losses)) if epoch_losses else float("nan")
    metrics["train_loss"].append(avg_loss)
    logger.info("epoch %d | loss: %.4f", epoch, avg_loss)

  return model, state.params, dict(metrics)


def run_extract(config: ParserConfig, paths: Paths, word_vectors=None) -> dict:
  vocab = new_vocab()
  sentences = load_conll_data(paths.corpus_train, vocab)

  result = extract_training_data(sentences, vocab, config, word_vectors)

  save_patterns(result.patterns, paths.patterns_file)
  save_vocab(vocab, paths.form_file, paths.lemma_file, paths.upostag_file)
  save_subset(paths.failed_sentences_file, sentences, result.failed)

  summary = {
    "n_sentences": len(sentences),
    "n_success": result.n_success,
    "n_failed": result.n_failed,
    "n_non_projective": result.n_non_projective,
    "n_patterns": len(result.patterns),
    "failed": result.failed,
  }
  save_results(paths.output_dir, "extract", {"config": config, "results": summary})
  return summary


def run_train(config: ParserConfig, paths: Paths) -> dict:
  patterns = load_patterns(paths.patterns_file)
  _, params, history = train_model(patterns, config)
  save_params(params, paths.model_file)
  save_results(paths.output_dir, "train", {"config": config, "results": history})
  return history


def run_test(config: ParserConfig, paths: Paths, word_vectors=None) -> dict:
  # vocabularies and model are frozen artifacts of extract/train
  vocab = load_vocab(paths.form_file, paths.lemma_file, paths.upostag_file)
  params = load_params(paths.model_file)
  classifier = FlaxClassifier(build_model(config), params)

  sentences = load_conll_data(paths.corpus_test)
  results = parse_corpus(sentences, classifier, vocab, config, word_vectors)
  report = evaluate_corpus(sentences, results)
  save_results(paths.output_dir, "test", {"config": config, "results": report})
  return report._asdict()


def _word_vectors(config: ParserConfig, paths: Paths) -> Optional[dict]:
  if config.word_encoding == "embedding":
    return load_word_vectors(paths.word_vectors_file)
  return None


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="log every transition")
def cli(verbose: bool):
  """Shift-reduce dependency parser for CoNLL-U treebanks."""
  logging.basicConfig(
    level=logging.DEBUG if verbose else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
  )


@cli.command()
def extract():
  """Replay the oracle over the training corpus and save patterns."""
  config, paths = load_config(), load_paths()
  run_extract(config, paths, _word_vectors(config, paths))


@cli.command()
def train():
  """Train the action classifier on the saved patterns."""
  run_train(load_config(), load_paths())


@cli.command()
def test():
  """Parse the test corpus with the trained classifier and evaluate."""
  config, paths = load_config(), load_paths()
  report = run_test(config, paths, _word_vectors(config, paths))
  click.echo(
    f"success {report['success_rate']:.2%} | complete {report['complete_rate']:.2%} | "
    f"recall {report['average_recall']:.2%} | precision {report['average_precision']:.2%}"
  )


@cli.command()
@click.argument("corpus", required=False, type=click.Path(exists=True, dir_okay=False))
def stats(corpus: Optional[str]):
  """Count projective and non-projective sentences in a corpus."""
  sentences = load_conll_data(corpus or load_paths().corpus_train)
  result = corpus_statistics(sentences)
  click.echo(f"Number of projective sentences: {result.n_projective}")
  click.echo(f"Number of non-projective sentences: {result.n_non_projective}")
  click.echo(f"Percentage of non-projective sentences: {result.non_projective_rate:.2%}")


def main():
  cli()


if __name__ == "__main__":
  main()
