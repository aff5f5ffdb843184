import numpy as np
import pytest

import inference
from conftest import FixedClassifier, make_sentence
from config import create_config
from engine import init_state
from inference import parse_corpus, parse_sentence, rank_actions
from schema import Arc


def test_forced_shift_skips_classifier(three_tokens, vocab, config):
  # rightArc always ranks first, but cannot be chosen with fewer than 2 on the stack
  classifier = FixedClassifier([0.1, 0.2, 0.7])
  result = parse_sentence(three_tokens, classifier, vocab, config)

  assert result.arcs == (Arc(2, 1), Arc(3, 2))
  assert [t.id for t in result.stack] == [3]
  assert result.buffer == ()
  assert not result.exhausted
  # only the two configurations with a full stack consult the classifier
  assert classifier.calls == 2


def test_falls_back_when_shift_is_impossible(three_tokens, vocab, config):
  classifier = FixedClassifier([1.0, 0.5, 0.1])
  result = parse_sentence(three_tokens, classifier, vocab, config)

  assert result.arcs == (Arc(2, 3), Arc(1, 2))
  assert [t.id for t in result.stack] == [1]
  assert not result.exhausted


def test_swap_never_applies_at_runtime(three_tokens, vocab):
  config = create_config(use_swap=True)
  classifier = FixedClassifier([0.0, 0.1, 0.2, 0.9])
  result = parse_sentence(three_tokens, classifier, vocab, config)
  assert result.arcs == (Arc(2, 1), Arc(3, 2))


def test_gold_heads_are_ignored(three_tokens, vocab, config):
  headless = make_sentence(
    [0, 0, 0], forms=["The", "cat", "sleeps"], tags=["DET", "NOUN", "VERB"]
  )
  classifier = FixedClassifier([0.3, 0.6, 0.1])
  assert (
    parse_sentence(headless, classifier, vocab, config).arcs
    == parse_sentence(three_tokens, classifier, vocab, config).arcs
  )


def test_exhaustion_returns_partial_parse(three_tokens, vocab, config, monkeypatch):
  real = inference.execute_action

  def arcs_disabled(state, action):
    if action == "shift":
      return real(state, action)
    return None

  monkeypatch.setattr(inference, "execute_action", arcs_disabled)
  result = parse_sentence(three_tokens, FixedClassifier([0.2, 0.5, 0.3]), vocab, config)

  assert result.exhausted
  assert [t.id for t in result.stack] == [1, 2, 3]
  assert result.buffer == ()
  assert result.arcs == ()


def test_rank_actions_orders_by_score(three_tokens, vocab, config):
  state = init_state(three_tokens)
  ranked = rank_actions(FixedClassifier([0.2, 0.5, 0.3]), state, vocab, config)
  assert [a for a, _ in ranked] == ["leftArc", "rightArc", "shift"]


def test_rank_actions_keeps_order_on_ties(three_tokens, vocab, config):
  state = init_state(three_tokens)
  ranked = rank_actions(FixedClassifier([0.5, 0.5, 0.5]), state, vocab, config)
  assert [a for a, _ in ranked] == ["shift", "leftArc", "rightArc"]


def test_rank_actions_checks_score_count(three_tokens, vocab, config):
  with pytest.raises(ValueError):
    rank_actions(FixedClassifier([1.0, 0.0]), init_state(three_tokens), vocab, config)


def test_classifier_sees_fixed_length_vectors(projective_sentence, vocab, config):
  lengths = set()

  class Recording:
    def predict(self, features):
      lengths.add(np.asarray(features).shape)
      return np.array([0.5, 0.3, 0.2])

  parse_sentence(projective_sentence, Recording(), vocab, config)
  assert len(lengths) == 1


def test_parse_corpus_keeps_order(three_tokens, projective_sentence, vocab, config):
  classifier = FixedClassifier([0.1, 0.2, 0.7])
  results = parse_corpus([projective_sentence, three_tokens], classifier, vocab, config)
  assert len(results) == 2
  assert len(results[0].arcs) == 7
  assert len(results[1].arcs) == 2
