import re
from html import escape
from typing import Sequence

from app.models.game import BookPage

_STYLE = """
    body { font-family: 'Comic Sans MS', cursive, sans-serif; text-align: center; background: #fffcf0; padding: 40px; color: #333; }
    .page { background: white; max-width: 800px; margin: 0 auto 50px auto; padding: 40px; border-radius: 30px; border: 10px solid #eee; }
    img { max-width: 100%; border-radius: 20px; }
    h1 { font-size: 4em; color: #4f46e5; }
    p { font-size: 2em; line-height: 1.4; margin-top: 20px; }
    .page-number { color: #ccc; }
"""


def book_filename(title: str) -> str:
    """Nom du fichier téléchargé : espaces → '_' (ex: 'The_Lion_King.html')."""
    stem = re.sub(r"\s+", "_", title.strip())
    stem = re.sub(r"[\\/\"]", "", stem) or "my_book"
    return f"{stem}.html"


def _page_block(page: BookPage, number: int) -> str:
    return (
        '  <div class="page">\n'
        f'    <img src="{escape(page.imageUrl)}" alt="Page {number}" />\n'
        f"    <p>{escape(page.text)}</p>\n"
        f'    <div class="page-number">- Page {number} -</div>\n'
        "  </div>\n"
    )


def render_book_html(title: str, author: str, cover_url: str, pages: Sequence[BookPage]) -> bytes:
    """
    Produit le livre complet en un seul document HTML autonome :
    couverture (titre, auteur, image) puis une section par page, dans l'ordre.
    Les images sont embarquées telles quelles (data URI ou URL).
    """
    parts = [
        "<!DOCTYPE html>\n",
        '<html lang="en">\n',
        "<head>\n",
        '  <meta charset="UTF-8">\n',
        f"  <title>{escape(title)}</title>\n",
        f"  <style>{_STYLE}  </style>\n",
        "</head>\n",
        "<body>\n",
        '  <div class="page cover">\n',
        f"    <h1>{escape(title)}</h1>\n",
        f"    <p>By {escape(author)}</p>\n",
        f'    <img src="{escape(cover_url)}" alt="Cover" />\n',
        "  </div>\n",
    ]
    for i, page in enumerate(pages, start=1):
        parts.append(_page_block(page, i))
    parts.append("</body>\n</html>\n")
    return "".join(parts).encode("utf-8")
