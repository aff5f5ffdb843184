import logging
from typing import List, Mapping, Optional, Sequence, Tuple

import numpy as np

from config import LEFT_ARC, MAX_ORACLE_STEPS, RIGHT_ARC, SHIFT, SWAP, ParserConfig
from engine import apply_transition, init_state, is_terminal
from features import encode_action, extract_features
from schema import ExtractionResult, ParserState, ParserVocab, Pattern, Sentence, Token
from sentence import (
  dependency_tree_lines,
  has_non_projective_structure,
  sentence_recall_precision,
  tokens_cross,
)

logger = logging.getLogger(__name__)


class OracleError(RuntimeError):
  """no valid transition exists for the current configuration."""


def has_dependents_in_buffer(top: Token, buffer: Sequence[Token]) -> bool:
  return any(token.head == top.id for token in buffer)


def detect_swap_indices(
  stack: Sequence[Token], buffer: Sequence[Token]
) -> Optional[Tuple[int, int]]:
  """
  (stack_index, buffer_index) of the first crossing stack/buffer pair.
  buffer[0] against stack[-2] has priority; after that every stack position,
  top down, is tested against buffer[1:].
  """
  if len(stack) > 1 and buffer:
    below_index = len(stack) - 2
    if tokens_cross(buffer[0], stack[below_index]):
      return below_index, 0

  for s_index in range(len(stack) - 1, -1, -1):
    for b_index in range(1, len(buffer)):
      if tokens_cross(stack[s_index], buffer[b_index]):
        return s_index, b_index
  return None


def get_gold_transition(
  state: ParserState, use_swap: bool = False
) -> Tuple[str, Optional[Tuple[int, int]]]:
  """
  canonical action for the configuration, with swap indices for swap.
  """
  stack, buffer = state.stack, state.buffer

  if len(stack) < 2:
    if not buffer:
      raise OracleError("shift failed: buffer is empty")
    return SHIFT, None

  top = stack[-1]
  below = stack[-2]

  # collect every child of the top before it gets attached
  if has_dependents_in_buffer(top, buffer):
    return SHIFT, None
  if top.head == below.id:
    return LEFT_ARC, None
  if below.head == top.id:
    return RIGHT_ARC, None
  if buffer:
    return SHIFT, None

  indices = detect_swap_indices(stack, buffer) if use_swap else None
  if indices is None:
    raise OracleError(
      f"no transition applies: stack top {top.id}, below {below.id}, empty buffer"
    )
  return SWAP, indices


def oracle_step(
  state: ParserState,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> Tuple[Pattern, str, ParserState]:
  """
  A single step of the oracle used for generating training instances.
  """
  features = extract_features(state.stack, state.buffer, vocab, config, word_vectors)
  action, swap_indices = get_gold_transition(state, config.use_swap)
  next_state = apply_transition(state, action, swap_indices)
  if next_state is None:
    raise OracleError(f"{action} is not applicable")
  pattern = Pattern(input=features, output=encode_action(action, config.actions))
  return pattern, action, next_state


def replay_sentence(
  sentence: Sentence,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> Tuple[List[Pattern], List[str], ParserState]:
  """runs the oracle to the end of the sentence; raises OracleError if it gets stuck."""
  state = init_state(sentence)
  patterns: List[Pattern] = []
  actions: List[str] = []

  while not is_terminal(state):
    if len(actions) >= MAX_ORACLE_STEPS:
      raise OracleError(f"no terminal state after {MAX_ORACLE_STEPS} steps")
    pattern, action, state = oracle_step(state, vocab, config, word_vectors)
    patterns.append(pattern)
    actions.append(action)
    logger.debug(
      "%s | stack %s | buffer %s",
      action,
      [t.form for t in state.stack],
      [t.form for t in state.buffer],
    )

  return patterns, actions, state


def _log_tree(sentence: Sentence) -> None:
  if logger.isEnabledFor(logging.DEBUG):
    logger.debug("gold tree:\n%s", "\n".join(dependency_tree_lines(sentence)))


def extract_training_data(
  sentences: Sequence[Sentence],
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> ExtractionResult:
  """
  replays the oracle over a corpus. only sentences reconstructed with
  recall = precision = 1 contribute patterns; the others are reported by index.
  """
  patterns: List[Pattern] = []
  failed: List[int] = []
  n_non_projective = 0

  for index, sentence in enumerate(sentences):
    if has_non_projective_structure(sentence) is not None:
      n_non_projective += 1

    try:
      sentence_patterns, _, state = replay_sentence(
        sentence, vocab, config, word_vectors
      )
    except OracleError as e:
      logger.debug("sentence %d failed: %s", index, e)
      failed.append(index)
      _log_tree(sentence)
      continue

    score = sentence_recall_precision(sentence, state.arcs)
    if score.recall == 1 and score.precision == 1:
      patterns.extend(sentence_patterns)
    else:
      logger.debug(
        "sentence %d imperfect: recall %.2f precision %.2f",
        index,
        score.recall,
        score.precision,
      )
      failed.append(index)
      _log_tree(sentence)

    if config.progress_every and (index + 1) % config.progress_every == 0:
      logger.info(
        "processed %d sentences; patterns so far: %d", index + 1, len(patterns)
      )

  n_sentences = len(sentences)
  n_failed = len(failed)
  n_success = n_sentences - n_failed
  logger.info("total number of sentences: %d", n_sentences)
  logger.info("successfully processed %d sentences, %d failed", n_success, n_failed)
  if n_sentences:
    logger.info(
      "percentage of successful sentences: %.2f%%", n_success / n_sentences * 100.0
    )
  logger.info("non-projective sentences: %d", n_non_projective)
  logger.info("number of training patterns: %d", len(patterns))
  if patterns:
    logger.info("vector size: %d", patterns[0].input.shape[0])

  return ExtractionResult(
    patterns=patterns,
    failed=failed,
    n_success=n_success,
    n_failed=n_failed,
    n_non_projective=n_non_projective,
  )
