from bs4 import UnicodeDammit
from pydantic import BaseModel, ConfigDict


class FetchedArticle(BaseModel):
    """A fully buffered HTTP response body.

    The body is read once from the network and is immutable, so the
    readability and metadata stages can both consume it.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int
    mime_type: str
    charset: str | None = None
    body: bytes

    @property
    def text(self) -> str:
        """Body decoded with the header charset, else the document's own declaration."""
        known = [self.charset] if self.charset else []
        dammit = UnicodeDammit(self.body, known_definite_encodings=known, is_html=True)
        if dammit.unicode_markup is not None:
            return dammit.unicode_markup
        return self.body.decode("utf-8", errors="replace")
