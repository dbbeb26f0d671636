from __future__ import annotations

from typing import Iterable, List, Type, Union


def format_text_as_red(text):
    return f"\033[91m{text}\033[0m"


# base class for any type of custom exception
class PhalinkException(Exception):
    pass


class InvalidPhalinkInput(PhalinkException):
    pass


class MissingColumnsException(InvalidPhalinkInput):
    def __init__(self, message=""):
        full_message = "Required columns are missing from the input table(s)"

        if message:
            full_message += "\n" + message
        super().__init__(full_message)


class ErrorLogger:
    """Collects problems found while checking settings or input tables, so the
    user sees every problem in one exception instead of fixing them one by one.
    """

    def __init__(self):
        self.messages: List[str] = []

    def log_error(self, error: Union[str, Iterable[str], None]) -> None:
        if error is None:
            return
        if isinstance(error, str):
            self.messages.append(error)
        else:
            self.messages.extend(e for e in error if e is not None)

    def raise_and_log_all_errors(
        self,
        exception: Type[PhalinkException] = PhalinkException,
        additional_txt: str = "",
    ) -> None:
        """Raise `exception` listing every logged message, if there are any."""
        if not self.messages:
            return
        listed = "\n\n".join(self.messages)
        heading = format_text_as_red(f"{len(self.messages)} problem(s) found:")
        raise exception(f"{heading}\n{listed}\n{additional_txt}")
