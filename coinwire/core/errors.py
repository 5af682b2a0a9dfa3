class MessageError(Exception):
    """
    Error raised while building, encoding or decoding a wire message.

    `context` names the operation that failed (e.g. "MsgInv.decode") and
    `detail` says what was wrong with the data.
    """

    def __init__(self, context, detail):
        super().__init__(f"{context}: {detail}")
        self.context = context
        self.detail = detail


class CapacityExceededError(MessageError):
    """Application code tried to grow a bounded list past its limit."""

    def __init__(self, context, limit):
        super().__init__(context, f"too many items in message [max {limit}]")
        self.limit = limit


class TooManyItemsError(MessageError):
    """Wire data (or a list being encoded) holds more items than allowed."""

    def __init__(self, context, got, max_items):
        super().__init__(context, f"too many items in message [{got}, max {max_items}]")
        self.got = got
        self.max = max_items


class TruncatedError(MessageError, EOFError):
    """Stream ended before the expected number of bytes was read."""


class MalformedError(MessageError, ValueError):
    """Bytes were present but do not form a valid value."""


class UnknownCommandError(MessageError):
    def __init__(self, context, command):
        super().__init__(context, f"unhandled command [{command}]")
        self.command = command
