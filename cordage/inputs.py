"""
Input token cursor.

Scope
- Input: ordered raw tokens with peek/pop, front-push, nested snapshot/restore,
  per-token used tracking, a movable cursor offset and a stack of breakers.
- parse_comp_line(): the shell COMP_LINE tokenizer used by the complete walker.

Model
- Tokens are append-only (pushed tokens are appended to the backing list).
- remaining: indices of tokens not yet used, in logical order. Popping or
  marking a token used removes its index from remaining.
- offset: position within remaining that peek/pop operate on. Flag values are
  read from the middle of the stream by shifting the offset (see at()).
- journal: every removal/insertion into remaining and every rewrite is
  recorded while a snapshot is alive, so restore() can roll back to the
  snapshot by replaying the journal backwards. Nothing copies the token list.

Examples
    >>> tokens = Input(["abc", "def", "ghi"])
    >>> tokens.pop()
    'abc'
    >>> mark = tokens.snapshot()
    >>> tokens.pop_n(2, 0)
    (['def', 'ghi'], True)
    >>> tokens.restore(mark)
    >>> tokens.remaining_values()
    ['def', 'ghi']
"""
import itertools
from contextlib import contextmanager

from .utils import UNBOUNDED

_WORD_BREAKS = frozenset(" ")
_QUOTES = frozenset("\"'")


class Input:
    """
    Token stream consumed by the walkers.

    Parameters
    - tokens: Iterable[str]
      raw tokens (already split by the shell, or by parse_comp_line()).
    - delimiter: str | None
      quote character left open at the end of a COMP_LINE; suggestions that
      contain spaces are wrapped in it instead of being backslash-escaped.
    """

    def __init__(self, tokens=(), /, delimiter=None):
        self._tokens = [str(token) for token in tokens]
        self._sequence = list(range(len(self._tokens)))
        self._remaining = list(self._sequence)
        self._offset = 0
        self._breakers = []
        self._journal = []
        self._snapshots = {}
        self._counter = itertools.count(1)
        self.delimiter = delimiter

    def __repr__(self):
        return f"Input(tokens={self.tokens()!r}, remaining={self.remaining_values()!r})"

    # --- reading ---

    def peek(self):
        """
        return the token under the cursor without consuming it (None when exhausted).
        """
        return self.peek_at(0)

    def peek_at(self, offset, /):
        position = self._offset + offset
        if 0 <= position < len(self._remaining):
            return self._tokens[self._remaining[position]]
        return None

    def tokens(self):
        """
        every token, used or not, in logical order.
        """
        return [self._tokens[index] for index in self._sequence]

    def last(self):
        """
        the final token of the stream (the one being completed), "" when empty.
        """
        return self._tokens[self._sequence[-1]] if self._sequence else ""

    def remaining(self):
        """
        indices of the tokens not yet used, in logical order.
        """
        return list(self._remaining)

    def remaining_values(self):
        return [self._tokens[index] for index in self._remaining]

    def used(self):
        remaining = set(self._remaining)
        return [self._tokens[index] for index in self._sequence if index not in remaining]

    def num_remaining(self):
        return len(self._remaining) - self._offset

    def fully_processed(self):
        return self.num_remaining() <= 0

    # --- consuming ---

    def _take(self, position):
        index = self._remaining.pop(position)
        if self._snapshots:
            self._journal.append(("pop", position, index))
        return self._tokens[index]

    def pop(self):
        """
        consume and return the token under the cursor (None when exhausted).
        """
        return self.pop_at(0)

    def pop_at(self, offset, /):
        position = self._offset + offset
        if 0 <= position < len(self._remaining):
            return self._take(position)
        return None

    def mark_used(self, index, /):
        """
        mark the token at the given backing index as used, wherever it sits.
        """
        try:
            position = self._remaining.index(index)
        except ValueError:
            return
        self._take(position)

    def pop_n(self, minimum, optional, breakers=(), data=None):
        """
        Consume up to minimum + optional tokens from the cursor.

        Same as pop_n_indices(), with the token values instead of their indices.
        """
        indices, enough = self.pop_n_indices(minimum, optional, breakers, data)
        return self.values(indices), enough

    def pop_n_indices(self, minimum, optional, breakers=(), data=None):
        """
        Consume up to minimum + optional tokens and return their backing indices.

        Parameters
        - minimum: int, tokens required for the result to be "enough".
        - optional: int | UNBOUNDED, extra tokens that may be taken.
        - breakers: Iterable of objects with breaks(token, data) -> bool and a
          discard attribute. Consumption stops at the first breaking token;
          a discarding breaker consumes that token too.
        - data: Data handed to the breakers.

        Returns
        - (indices, enough): backing indices of the consumed tokens (see
          values() and rewrite()) and whether len(indices) >= minimum.
        """
        available = self.num_remaining()
        if optional == UNBOUNDED or minimum + optional > available:
            shift = available
        else:
            shift = minimum + optional

        breakers = (*self._breakers, *breakers)
        indices = []
        for _ in range(shift):
            token = self.peek()
            if breaker := next((breaker for breaker in breakers if breaker.breaks(token, data)), None):
                if breaker.discard:
                    self.pop()
                break
            indices.append(self._remaining[self._offset])
            self.pop()
        return indices, len(indices) >= minimum

    def values(self, indices, /):
        return [self._tokens[index] for index in indices]

    def rewrite(self, index, token, /):
        """
        replace the value of the token at a backing index (used or not).

        complete-for-execute stores resolved values this way, so caches and
        shortcuts see the full value instead of the abbreviation.
        """
        if self._snapshots:
            self._journal.append(("rewrite", index, self._tokens[index]))
        self._tokens[index] = str(token)

    # --- inserting ---

    def push_front(self, *tokens):
        """
        insert tokens under the cursor, ahead of everything not yet consumed.
        """
        self.push_front_at(0, *tokens)

    def push_front_at(self, offset, /, *tokens):
        if not tokens:
            return
        position = min(self._offset + offset, len(self._remaining))
        indices = list(range(len(self._tokens), len(self._tokens) + len(tokens)))
        self._tokens.extend(str(token) for token in tokens)

        if position < len(self._remaining):
            anchor = self._sequence.index(self._remaining[position])
        else:
            anchor = len(self._sequence)
        self._sequence[anchor:anchor] = indices
        self._remaining[position:position] = indices
        if self._snapshots:
            self._journal.append(("push", position, indices))

    # --- snapshots ---

    def snapshot(self):
        """
        open a rollback point and return its id; snapshots nest.
        """
        identifier = next(self._counter)
        self._snapshots[identifier] = (len(self._journal), frozenset(self._remaining[self._offset:]))
        return identifier

    def restore(self, identifier, /):
        """
        roll the cursor back to the given snapshot and close it (and any snapshot
        opened after it).
        """
        length, _ = self._snapshots[identifier]
        for later in [key for key in self._snapshots if key >= identifier]:
            del self._snapshots[later]

        while len(self._journal) > length:
            match self._journal.pop():
                case ("pop", position, index):
                    self._remaining.insert(position, index)
                case ("push", position, indices):
                    del self._remaining[position:position + len(indices)]
                    for index in indices:
                        self._sequence.remove(index)
                case ("rewrite", index, token):
                    self._tokens[index] = token
        if not self._snapshots:
            self._journal.clear()

    def release(self, identifier, /):
        """
        close a snapshot without rolling back.
        """
        del self._snapshots[identifier]
        if not self._snapshots:
            self._journal.clear()

    def snapshot_values(self, identifier, /):
        """
        tokens that were still to be read when the snapshot was opened, in input
        order and whether or not they were consumed since (tokens pushed after
        the snapshot are not part of it).
        """
        _, pending = self._snapshots[identifier]
        return [self._tokens[index] for index in self._sequence if index in pending]

    # --- cursor context ---

    @contextmanager
    def at(self, offset, /):
        """
        temporarily shift the cursor offset tokens ahead (flag values are read
        from the middle of the stream this way).
        """
        previous = self._offset
        self._offset = previous + offset
        try:
            yield self
        finally:
            self._offset = previous

    @contextmanager
    def breaking(self, *breakers):
        """
        temporarily add breakers that every pop_n() call honours.
        """
        self._breakers.extend(breakers)
        try:
            yield self
        finally:
            del self._breakers[len(self._breakers) - len(breakers):]


def parse_comp_line(comp_line, /, passthrough=()):
    r"""
    Tokenize a shell COMP_LINE into an Input for the complete walker.

    behavior
    - words are split on spaces; single or double quotes group characters and
      are removed; a backslash keeps the next character (an escaped space joins
      words, any other escaped character keeps its backslash).
    - the first word is the command name and is dropped.
    - a trailing space means a new, empty word is being completed, so "" is
      appended as the last token.
    - when the line ends inside a quote, that quote character becomes the
      input delimiter.
    - passthrough tokens are placed ahead of the parsed words.

    examples
    - 'cmd ab'        → ['ab']
    - 'cmd ab '       → ['ab', '']
    - 'cmd "a b'      → ['a b']  (delimiter '"')
    - 'cmd a\ b'      → ['a b']
    """
    words, current = [], []
    in_word = False
    state, quote, resume = "whitespace", None, "word"

    def end_word():
        words.append("".join(current))
        current.clear()

    for char in comp_line:
        match state:
            case "word":
                if char in _WORD_BREAKS:
                    end_word()
                    in_word = False
                    state = "whitespace"
                elif char in _QUOTES:
                    state, quote = "quote", char
                elif char == "\\":
                    state, resume = "backslash", "word"
                else:
                    current.append(char)
            case "whitespace":
                if char in _WORD_BREAKS:
                    continue
                in_word = True
                if char in _QUOTES:
                    state, quote = "quote", char
                elif char == "\\":
                    state, resume = "backslash", "word"
                else:
                    current.append(char)
                    state = "word"
            case "quote":
                if char == quote:
                    state = "word"
                else:
                    current.append(char)
            case "backslash":
                if char != " ":
                    current.append("\\")
                current.append(char)
                state = resume

    if state == "backslash":
        current.append("\\")

    delimiter = quote if state == "quote" else None
    if in_word:
        end_word()
    else:
        words.append("")

    if len(words) == 1:
        words.append("")

    return Input([*passthrough, *words[1:]], delimiter=delimiter)


__all__ = (
    "Input",
    "parse_comp_line",
)
