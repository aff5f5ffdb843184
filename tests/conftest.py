import numpy as np
import pytest

from config import create_config
from data_loader import new_vocab, update_vocab
from schema import Sentence, Token


def make_sentence(heads, forms=None, tags=None):
  """tokens 1..n with the given gold heads."""
  n = len(heads)
  forms = forms or [f"w{i}" for i in range(1, n + 1)]
  tags = tags or ["NOUN"] * n
  return Sentence(
    tuple(
      Token(id=i + 1, form=forms[i], lemma=forms[i].lower(), upostag=tags[i], head=h)
      for i, h in enumerate(heads)
    )
  )


class FixedClassifier:
  """returns the same scores for every input and counts its calls."""

  def __init__(self, scores):
    self.scores = np.asarray(scores, dtype=np.float32)
    self.calls = 0

  def predict(self, features):
    self.calls += 1
    return self.scores


@pytest.fixture
def config():
  return create_config(stack_depth=2, buffer_depth=1)


@pytest.fixture
def three_tokens():
  # token 2 is the root and governs 1 and 3
  return make_sentence(
    [2, 0, 2], forms=["The", "cat", "sleeps"], tags=["DET", "NOUN", "VERB"]
  )


@pytest.fixture
def projective_sentence():
  # "I saw the man with a telescope ." style tree
  return make_sentence(
    [2, 0, 4, 2, 7, 7, 4, 2],
    forms=["I", "saw", "the", "man", "with", "a", "telescope", "."],
    tags=["PRON", "VERB", "DET", "NOUN", "ADP", "DET", "NOUN", "PUNCT"],
  )


@pytest.fixture
def non_projective_sentence():
  # arcs (3,1) and (2,4) cross
  return make_sentence([3, 0, 2, 2])


@pytest.fixture
def vocab(projective_sentence, three_tokens, non_projective_sentence):
  v = new_vocab()
  for s in (projective_sentence, three_tokens, non_projective_sentence):
    for t in s.tokens:
      update_vocab(v, t)
  return v
