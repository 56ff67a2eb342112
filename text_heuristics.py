"""
Editing heuristics for the Liquorice editor.
Auto-indent, soft tab stops, bracket/quote/comment pairing and HTML tag
completion, decided from the current line and cursor column only.
"""

from collections import namedtuple


TAB_WIDTH = 4

PAIRS = {
    '(': '()',
    '{': '{}',
    '[': '[]',
    "'": "''",
    '"': '""',
    '`': '``',
}

COMMENT_BLOCK = '*  */'


Edit = namedtuple('Edit', ['text', 'back', 'erase'], defaults=(0, 0))
Edit.__doc__ = """An edit for the host widget to apply at its cursor.

The host first removes ``erase`` characters before the start of the
selection (collapsing the selection), then replaces the selection with
``text`` and finally moves the cursor ``back`` characters to the left.
"""


def indent_of(line):
    """Count the spaces at the start of a line."""
    count = 0
    for char in line:
        if char != ' ':
            break
        count += 1
    return count


def tab_stop_distance(column):
    """Number of spaces from column to the next tab stop, always 1..TAB_WIDTH."""
    if column % TAB_WIDTH == 0:
        return TAB_WIDTH
    return TAB_WIDTH - (column + TAB_WIDTH) % TAB_WIDTH


def insert_tab(column):
    """Fill up to the next tab stop with spaces."""
    return Edit(' ' * tab_stop_distance(column))


def remove_tab(line, column):
    """Remove the whitespace back to the previous tab stop.

    Returns None at the start of a line or when anything but whitespace
    lies between the previous tab stop and the cursor.
    """
    if column <= 0:
        return None
    if column % TAB_WIDTH == 0:
        stop = column - TAB_WIDTH
    else:
        stop = column - column % TAB_WIDTH
    if line[stop:column].strip():
        return None
    return Edit('', erase=column - stop)


def complete_html_tag(line, column):
    """Close the opening tag the cursor sits in, e.g. ``<div`` + ``>``.

    Scans back from the cursor for ``<``. Closing tags (a ``/`` before the
    ``<``) and lines without ``<`` are not completed.
    """
    for i in range(min(column, len(line)) - 1, -1, -1):
        char = line[i]
        if char == '/':
            return None
        if char == '<':
            tagname = line[i + 1:column]
            return Edit('></' + tagname + '>', back=len(tagname) + 3)
    return None


def complete_char(char, last_char, line, column):
    """Decide what typing char should insert instead of itself."""
    if char in PAIRS:
        return Edit(PAIRS[char], back=1)
    if char == '*' and last_char == '/':
        return Edit(COMMENT_BLOCK, back=3)
    if char == '>' and last_char != ' ':
        return complete_html_tag(line, column)
    return None


class EditorState:
    """Per-editor state carried between key events."""

    def __init__(self):
        self.pending_indent = ""
        self.last_char = '\0'

    def enter_pressed(self, line):
        """Remember the indent of the line Enter was pressed on."""
        indent = indent_of(line)
        if indent != len(self.pending_indent):
            self.pending_indent = ' ' * indent

    def enter_released(self):
        """Indent for the new line, to be inserted after the newline."""
        return Edit(self.pending_indent)

    def char_typed(self, char, line, column):
        """Handle a typed character; returns an Edit or None to pass it through."""
        edit = None
        if len(char) == 1:
            edit = complete_char(char, self.last_char, line, column)
        if char:
            self.last_char = char[-1]
        return edit
