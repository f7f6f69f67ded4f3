from dataclasses import dataclass
from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select, TextArea

from db.crud import MAX_REVIEW_COMMENT, MAX_REVIEW_TITLE

RATING_OPTIONS = [("★" * n + "☆" * (5 - n), n) for n in range(5, 0, -1)]


@dataclass(frozen=True)
class ReviewForm:
    rating: int
    comment: str
    title: str = ""


class ReviewModal(ModalScreen[Optional[ReviewForm]]):
    """
    Rating + comment form, optionally with a title (product reviews).
    Only collects input; the caller submits it.
    """

    def __init__(
        self,
        caption: str,
        rating: int = 5,
        comment: str = "",
        with_title: bool = False,
    ) -> None:
        super().__init__()
        self.caption = caption
        self._rating = rating
        self._comment = comment
        self._with_title = with_title

    def compose(self) -> ComposeResult:
        with Vertical(id="div-review"):
            yield Label(self.caption, classes="caption")
            yield Label("Rating")
            yield Select(RATING_OPTIONS, allow_blank=False, value=self._rating, id="select-rating")
            if self._with_title:
                yield Label("Title")
                yield Input(
                    placeholder="Summarise your experience",
                    max_length=MAX_REVIEW_TITLE,
                    id="input-title",
                )
            yield Label(f"Comment (up to {MAX_REVIEW_COMMENT} characters)")
            yield TextArea(self._comment, id="text-comment")
            with Horizontal(classes="dialog-btns"):
                yield Button("Go Back", id="btn-quit")
                yield Button("Submit", id="btn-submit", variant="primary")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    def handle_submit(self) -> None:
        comment = self.query_one("#text-comment", TextArea).text.strip()
        if len(comment) > MAX_REVIEW_COMMENT:
            self.notify(
                f"Comments are limited to {MAX_REVIEW_COMMENT} characters.", severity="error"
            )
            return
        title = self.query_one("#input-title", Input).value.strip() if self._with_title else ""
        self.dismiss(
            ReviewForm(
                rating=int(self.query_one("#select-rating", Select).value),
                comment=comment,
                title=title,
            )
        )

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(None)
