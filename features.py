import hashlib
from typing import Mapping, Optional, Sequence

import numpy as np

from config import NULL, NULL_INDEX, ParserConfig
from schema import ParserVocab, Token

# stands in for stack/buffer positions that are not occupied
NULL_TOKEN = Token(id=0, form=NULL, lemma=NULL, upostag=NULL, head=0, deprel=NULL)


def hash_word_to_normalized(form: str, vocab_size: int) -> float:
  """md5 of the lower-cased form, reduced modulo vocab_size, scaled into [0, 1)."""
  digest = hashlib.md5(form.lower().encode("utf-8")).hexdigest()
  return (int(digest, 16) % vocab_size) / vocab_size


def lookup(value: str, mapping: Mapping[str, int]) -> int:
  # NULL sits at index 0, so a falsy index is still a hit
  if value in mapping:
    return mapping[value]
  return mapping.get(NULL, NULL_INDEX)


def one_hot_encode(value: str, mapping: Mapping[str, int]) -> np.ndarray:
  vector = np.zeros(len(mapping), dtype=np.float32)
  vector[lookup(value, mapping)] = 1.0
  return vector


def encode_action(action: str, actions: Sequence[str]) -> np.ndarray:
  if action not in actions:
    raise ValueError(f"invalid action: {action}")
  vector = np.zeros(len(actions), dtype=np.float32)
  vector[list(actions).index(action)] = 1.0
  return vector


def word_vector_size(
  config: ParserConfig, word_vectors: Optional[Mapping[str, np.ndarray]] = None
) -> int:
  if config.word_encoding == "hash":
    return 1
  if not word_vectors:
    raise ValueError("embedding word encoding requires word vectors")
  return int(next(iter(word_vectors.values())).shape[0])


def encode_word(
  form: str,
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> np.ndarray:
  if config.word_encoding == "hash":
    return np.array(
      [hash_word_to_normalized(form, len(vocab.form2id))], dtype=np.float32
    )

  size = word_vector_size(config, word_vectors)
  for key in (form, form.lower()):
    if key in word_vectors:
      return np.asarray(word_vectors[key], dtype=np.float32)
  return np.zeros(size, dtype=np.float32)


def feature_vector_length(
  config: ParserConfig,
  vocab: ParserVocab,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> int:
  per_position = word_vector_size(config, word_vectors) + len(vocab.upostag2id)
  return (config.stack_depth + config.buffer_depth) * per_position


def observed_tokens(
  stack: Sequence[Token], buffer: Sequence[Token], config: ParserConfig
) -> Sequence[Token]:
  """stack positions nearest-top first, then buffer positions nearest-front first."""
  positions = []
  for depth in range(1, config.stack_depth + 1):
    positions.append(stack[-depth] if len(stack) >= depth else NULL_TOKEN)
  for depth in range(config.buffer_depth):
    positions.append(buffer[depth] if len(buffer) > depth else NULL_TOKEN)
  return positions


def extract_features(
  stack: Sequence[Token],
  buffer: Sequence[Token],
  vocab: ParserVocab,
  config: ParserConfig,
  word_vectors: Optional[Mapping[str, np.ndarray]] = None,
) -> np.ndarray:
  """
  fixed-length feature vector for a configuration: for every observed
  position the word encoding followed by a POS one-hot.
  """
  parts = []
  for token in observed_tokens(stack, buffer, config):
    parts.append(encode_word(token.form, vocab, config, word_vectors))
    parts.append(one_hot_encode(token.upostag, vocab.upostag2id))
  return np.concatenate(parts)
