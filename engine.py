from typing import Optional, Tuple
from config import SHIFT, LEFT_ARC, RIGHT_ARC, SWAP
from schema import Arc, ParserState, Sentence


def init_state(sentence: Sentence) -> ParserState:
  """
  Initializes the ParserState for a new sentence.
  """
  # The stack starts empty, the buffer holds every token in word order
  return ParserState(stack=(), buffer=tuple(sentence.tokens), arcs=())


def shift(state: ParserState) -> Optional[ParserState]:
  # Move buffer[0] onto the stack
  if not state.buffer:
    return None
  return state._replace(
    stack=state.stack + (state.buffer[0],), buffer=state.buffer[1:]
  )


def left_arc(state: ParserState) -> Optional[ParserState]:
  # head = stack[top-1], dependent = stack[top]; pop the top
  if len(state.stack) < 2:
    return None
  top = state.stack[-1]
  below = state.stack[-2]
  return state._replace(
    stack=state.stack[:-1], arcs=state.arcs + (Arc(below.id, top.id),)
  )


def right_arc(state: ParserState) -> Optional[ParserState]:
  # head = stack[top], dependent = stack[top-1]; remove stack[top-1]
  if len(state.stack) < 2:
    return None
  top = state.stack[-1]
  below = state.stack[-2]
  return state._replace(
    stack=state.stack[:-2] + (top,), arcs=state.arcs + (Arc(top.id, below.id),)
  )


def swap(
  state: ParserState, stack_index: int, buffer_index: int
) -> Optional[ParserState]:
  # Exchange stack[stack_index] and buffer[buffer_index]
  if not (0 <= stack_index < len(state.stack)):
    return None
  if not (0 <= buffer_index < len(state.buffer)):
    return None
  stack = list(state.stack)
  buffer = list(state.buffer)
  stack[stack_index], buffer[buffer_index] = buffer[buffer_index], stack[stack_index]
  return state._replace(stack=tuple(stack), buffer=tuple(buffer))


def apply_transition(
  state: ParserState,
  action: str,
  swap_indices: Optional[Tuple[int, int]] = None,
) -> Optional[ParserState]:
  """
  A pure function that transforms the current state based on an action.
  Returns None when the action's precondition does not hold.
  """
  if action == SHIFT:
    return shift(state)
  if action == LEFT_ARC:
    return left_arc(state)
  if action == RIGHT_ARC:
    return right_arc(state)
  if action == SWAP:
    if swap_indices is None:
      return None
    return swap(state, *swap_indices)
  raise ValueError(f"invalid action: {action}")


def is_terminal(state: ParserState) -> bool:
  return not state.buffer and len(state.stack) <= 1
