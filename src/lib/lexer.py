"""
Pygments lexers for Go Server Pages

Provides syntax highlighting for .gosp page source: the code inside
<?go:top ?>, <?go:block ?> and <?go:expr ?> is lexed as Python, include
targets as strings, and everything else is handed to the HTML lexer.

Token types:
- Comment.Preproc: Directive delimiters (<?go: and ?>)
- Keyword: Directive kinds (top, block, expr, include)
- String: Include targets
- Other: Page text (delegated to HtmlLexer by HtmlGospLexer)
"""

import re

from pygments.lexer import DelegatingLexer, RegexLexer, bygroups, using
from pygments.lexers.html import HtmlLexer
from pygments.lexers.python import PythonLexer
from pygments.token import Comment, Keyword, Other, String, Text


class GospLexer(RegexLexer):
    """
    Lexer for the directives of a Go Server Page

    Example:
        <p><?go:expr 6*7 ?></p>

    Tokens:
        <p>   → Other
        <?go: → Comment.Preproc
        expr  → Keyword
        6*7   → Python tokens
        ?>    → Comment.Preproc
    """

    name = 'Go Server Page directives'
    aliases = ['gosp-directives']
    filenames = []
    flags = re.DOTALL

    tokens = {
        'root': [
            (r'(<\?go:)(include)(\s+)(.*?)(\s*)(\?>)',
             bygroups(Comment.Preproc, Keyword, Text, String, Text, Comment.Preproc)),

            (r'(<\?go:)(top|block|expr)(\s+)(.*?)(\?>)',
             bygroups(Comment.Preproc, Keyword, Text, using(PythonLexer), Comment.Preproc)),

            # Everything else is page text
            (r'[^<]+', Other),
            (r'<', Other),
        ],
    }


class HtmlGospLexer(DelegatingLexer):
    """Go Server Page lexer: directives as above, page text as HTML"""

    name = 'Go Server Page'
    aliases = ['gosp']
    filenames = ['*.gosp']
    mimetypes = ['application/x-gosp']

    def __init__(self, **options):
        super().__init__(HtmlLexer, GospLexer, **options)


def get_lexer() -> HtmlGospLexer:
    """
    Get the HtmlGospLexer instance

    Returns:
        HtmlGospLexer instance ready for use with Pygments
    """
    return HtmlGospLexer()
