"""Serve the demo tree from the command line and hot reload on edits.

Run ``python run.py`` and type requests such as ``GET /users/1``.  Edit any
file under ``app/`` while it runs; the next request uses the new handler.
"""

from pathlib import Path

from burrow import HandlerStack, init


def dispatch(stack: HandlerStack, method: str, path: str) -> object:
    match = stack.resolve(method, path)
    if match is None:
        return {"error": "no route"}
    request = {
        "method": method,
        "path": path,
        "params": match.params,
        "headers": {"authorization": "Bearer demo"},
        "body": None,
    }
    result = None
    for handler in match.handlers:
        result = handler(request)
        if result is not None:
            break
    return result


def main() -> None:
    stack = HandlerStack()
    with init(stack, directory=Path(__file__).parent, verbose=True, hot_reload=True):
        while True:
            try:
                line = input("> ").strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue
            method, _, path = line.partition(" ")
            print(dispatch(stack, method.upper(), path or "/"))


if __name__ == "__main__":
    main()
