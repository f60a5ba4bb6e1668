"""Human-in-the-loop input channel.

Anything that needs a person (pasting the authorization code, confirming the
send) goes through an object with ``show(message)`` and ``ask(message) -> str``
so the flows can run against a scripted prompt in tests.
"""

CONFIRM_ANSWERS = ("y", "yes")


class ConsolePrompt:
    """Prompt backed by the terminal."""

    def show(self, message: str) -> None:
        print(message, flush=True)

    def ask(self, message: str) -> str:
        return input(message)


def confirm(prompt, question: str) -> bool:
    """Ask a yes/no question; only ``y``/``yes`` (any case, trimmed) count as yes."""
    try:
        reply = prompt.ask(f"{question} [y/N]: ")
    except EOFError:
        return False
    return reply.strip().lower() in CONFIRM_ANSWERS
