import json
from dataclasses import dataclass, field

HELLO_PATH = "/hello"
HELLO_BODY = {"message": "Hello, world!"}
UNSUPPORTED_BODY = {"error": "Unsupported URI"}


@dataclass(frozen=True)
class Reply:
    status: int
    body: dict[str, str] = field(default_factory=dict)


def handle(path: str, unmatched_status: int = 500) -> Reply:
    """Classify a request path. Only an exact ``/hello`` succeeds."""
    if path == HELLO_PATH:
        return Reply(200, dict(HELLO_BODY))
    return Reply(unmatched_status, dict(UNSUPPORTED_BODY))


def render(reply: Reply) -> bytes:
    # compact JSON plus trailing newline, same bytes on the wire as before
    return json.dumps(reply.body, ensure_ascii=False, separators=(",", ":")).encode("utf-8") + b"\n"
