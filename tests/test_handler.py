import json

import pytest

from hello_service.handler import Reply, handle, render


def test_hello_path():
    reply = handle("/hello")
    assert reply.status == 200
    assert json.loads(render(reply)) == {"message": "Hello, world!"}


@pytest.mark.parametrize("path", ["/anything-else", "/", "", "/hello/", "/HELLO", "/hello/world", "hello"])
def test_other_paths_are_unsupported(path):
    reply = handle(path)
    assert reply.status == 500
    assert json.loads(render(reply)) == {"error": "Unsupported URI"}


def test_unmatched_status_is_configurable():
    assert handle("/nope", unmatched_status=404) == Reply(404, {"error": "Unsupported URI"})
    assert handle("/hello", unmatched_status=404).status == 200


def test_render_wire_format():
    assert render(handle("/hello")) == b'{"message":"Hello, world!"}\n'
    assert render(handle("/nope")) == b'{"error":"Unsupported URI"}\n'


def test_render_escapes_values():
    body = render(Reply(200, {"quote": 'say "hi"\n'}))
    assert json.loads(body) == {"quote": 'say "hi"\n'}


def test_handle_is_idempotent():
    """No hidden state: same path, same reply, same bytes."""
    for path in ("/hello", "/nope"):
        first = handle(path)
        for _ in range(5):
            again = handle(path)
            assert again == first
            assert render(again) == render(first)


def test_handle_does_not_share_bodies():
    handle("/hello").body["message"] = "changed"
    assert handle("/hello").body == {"message": "Hello, world!"}
