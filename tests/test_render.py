from markupsafe import Markup

from eqref.app.render import _ReferenceSubstituter, render_markdown, substitute_references
from eqref.app.scanner import scan_comment_labels

SOURCE = "%\\label{a}\n\\label{plain}\n%\\label{b}"


def test_render_markdown_resolves_references():
    html = render_markdown("%\\label{a}\n\nSee \\ref{a}.", prefix="Eq. ")
    assert isinstance(html, Markup)
    assert "See Eq. 1." in html


def test_only_comment_labels_are_numbered():
    html = substitute_references("<p>\\ref{b} \\ref{plain}</p>", SOURCE)
    assert html == "<p>Equation 2 \\ref{plain}</p>"


def test_only_block_level_text_is_rewritten():
    html = "<div>\\ref{a}</div><pre><code>\\ref{a}</code></pre><p><em>\\ref{a}</em></p>"
    out = substitute_references(html, SOURCE)
    assert out == "<div>Equation 1</div><pre><code>\\ref{a}</code></pre><p><em>\\ref{a}</em></p>"


def test_markup_is_preserved():
    html = '<ul class="x"><li>see&nbsp;\\ref{a}<br/>next</li></ul><!-- note -->'
    out = substitute_references(html, SOURCE)
    assert out == '<ul class="x"><li>see&nbsp;Equation 1<br/>next</li></ul><!-- note -->'


def test_prefix_is_escaped():
    out = substitute_references("<p>\\ref{a}</p>", SOURCE, prefix="<b>")
    assert out == "<p>&lt;b&gt;1</p>"


def test_without_labels_html_is_untouched():
    html = "<p>\\ref{a}</p>"
    assert substitute_references(html, "no labels here") == html


def test_end_tags_keep_their_original_text():
    out = substitute_references("<P>\\ref{a}</P ><DIV>\\ref{b}</Div>", SOURCE)
    assert out == "<P>Equation 1</P ><DIV>Equation 2</Div>"


def test_marked_sections_are_closed_correctly():
    parser = _ReferenceSubstituter(scan_comment_labels(SOURCE), "Eq. ")
    parser.unknown_decl("CDATA[x < \\ref{a}")
    parser.unknown_decl("if !IE")
    assert parser.parts == ["<![CDATA[x < \\ref{a}]]>", "<![if !IE]>"]
