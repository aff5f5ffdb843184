import logging
from typing import List, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from config import SHIFT, SWAP, ParserConfig
from engine import apply_transition, init_state
from features import extract_features
from schema import ParseResult, ParserState, ParserVocab, Sentence

logger = logging.getLogger(__name__)


class Classifier(Protocol):
  """anything that scores every action for one feature vector."""

  def predict(self, features: np.ndarray) -> np.ndarray: ...


def rank_actions(
  classifier: Classifier,
  state: ParserState,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> List[Tuple[str, float]]:
  """actions sorted by descending score; ties keep the action order."""
  features = extract_features(state.stack, state.buffer, vocab, config, word_vectors)
  scores = np.asarray(classifier.predict(features), dtype=np.float64).reshape(-1)
  actions = config.actions
  if scores.shape[0] != len(actions):
    raise ValueError(
      f"classifier returned {scores.shape[0]} scores for {len(actions)} actions"
    )
  ranked = sorted(zip(actions, scores.tolist()), key=lambda pair: -pair[1])
  return ranked


def execute_action(state: ParserState, action: str) -> Optional[ParserState]:
  """runtime transition; swap has no indices at runtime and never applies."""
  if action == SWAP:
    return None
  return apply_transition(state, action)


def parse_sentence(
  sentence: Sentence,
  classifier: Classifier,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> ParseResult:
  """
  greedy parse driven by the classifier. arcs are attached by stack position,
  the head fields of the input tokens are never consulted.
  """
  state = init_state(sentence)

  while state.buffer or len(state.stack) > 1:
    if len(state.stack) < 2 and state.buffer:
      # no arc is possible yet, the classifier is not consulted
      state = execute_action(state, SHIFT)
      continue

    ranked = rank_actions(classifier, state, vocab, config, word_vectors)
    next_state = None
    for action, _ in ranked:
      next_state = execute_action(state, action)
      if next_state is not None:
        logger.debug(
          "%s | stack %d | buffer %d",
          action,
          len(next_state.stack),
          len(next_state.buffer),
        )
        break

    if next_state is None:
      logger.debug("every ranked action failed; returning partial parse")
      return ParseResult(state.stack, state.buffer, state.arcs, exhausted=True)
    state = next_state

  return ParseResult(state.stack, state.buffer, state.arcs)


def parse_corpus(
  sentences: Sequence[Sentence],
  classifier: Classifier,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> List[ParseResult]:
  results: List[ParseResult] = []
  for index, sentence in enumerate(sentences):
    results.append(parse_sentence(sentence, classifier, vocab, config, word_vectors))
    if config.progress_every and (index + 1) % config.progress_every == 0:
      logger.info("parsed %d / %d sentences", index + 1, len(sentences))
  return results
