from app.models.game import BookPage
from app.services.book_export import book_filename, render_book_html


def test_book_filename():
    assert book_filename("The Lion King") == "The_Lion_King.html"
    assert book_filename("  Big   Blue  Sea ") == "Big_Blue_Sea.html"
    assert book_filename('A "quoted" / title') == "A_quoted__title.html"
    assert book_filename("   ") == "my_book.html"


def test_render_book_html_orders_pages_and_escapes():
    pages = [
        BookPage(text="The shark lived in the <deep> sea.", imageUrl="data:image/png;base64,AAA"),
        BookPage(text="He was hungry & sad.", imageUrl="https://img.example/2.png"),
    ]
    html = render_book_html("Sharky", "Tom", "data:image/png;base64,COVER", pages).decode("utf-8")

    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Sharky</title>" in html
    assert "<h1>Sharky</h1>" in html
    assert "<p>By Tom</p>" in html
    assert 'src="data:image/png;base64,COVER"' in html
    assert "&lt;deep&gt;" in html
    assert "hungry &amp; sad" in html
    assert html.index("- Page 1 -") < html.index("- Page 2 -")
    assert html.index("data:image/png;base64,AAA") < html.index("https://img.example/2.png")


def test_render_empty_book_has_cover_only():
    html = render_book_html("Empty", "Ann", "", []).decode("utf-8")
    assert "By Ann" in html
    assert "- Page" not in html
