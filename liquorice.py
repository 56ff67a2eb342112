#!/usr/bin/env python3
"""
Liquorice: a minimalistic text editor built with PyQt5
Features: auto-indent, soft tab stops, bracket/quote/tag completion, plain text files
"""

import argparse
import logging
import os
import sys

from PyQt5.QtWidgets import (
    QApplication, QMainWindow, QPlainTextEdit, QWidget, QVBoxLayout,
    QFileDialog, QMessageBox, QAction, QStatusBar, QLabel
)
from PyQt5.QtCore import Qt, QObject, QStandardPaths, pyqtSignal
from PyQt5.QtGui import QFont, QKeySequence, QTextCursor, QTextDocument
from PyQt5.QtWidgets import QPlainTextDocumentLayout

from text_heuristics import TAB_WIDTH, EditorState, insert_tab, remove_tab


logger = logging.getLogger(__name__)

APP_NAME = "Liquorice"
DEFAULT_FILENAME = "untitled.txt"
LOG_LEVEL_ENV = "LIQUORICE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

OPEN_FILTERS = "Text files (*.txt);;All files (*)"
SAVE_FILTERS = "Text file (*.txt);;All files (*)"

MODIFIED_COLOR = "#cd5c5c"
CLEAN_COLOR = "#a9a9a9"

HELP_TEXT = """
Liquorice Help - Press [F1] to exit.

File handling
-------------
^N  New file
^O  Open a file
^S  Save currently loaded file
^W  Write out current text to a different file
^Q  Quit

Editing
-------
^X  Cut
^C  Copy
^V  Paste
^A  Select all
^T  Insert spaces up to the next tab stop (also Tab)
^R  Remove spaces back to the previous tab stop (also Shift+Tab)

Typing ( { [ ' " ` inserts the closing character as well,
/* opens a comment block and > after <tag closes the tag.
"""

BINARY_SIGNATURES = [
    b'\x7fELF',        # ELF executable
    b'MZ\x90\x00',     # Windows executable
    b'\x89PNG\r\n',    # PNG image
    b'\xff\xd8\xff',   # JPEG image
    b'GIF8',           # GIF image
    b'%PDF',           # PDF
    b'PK\x03\x04',     # ZIP archive
    b'\x1f\x8b\x08',   # GZIP compressed
    b'Rar!',           # RAR archive
    b'7z\xbc\xaf',     # 7-zip archive
]


def default_directory():
    """Directory new documents are placed in."""
    path = QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation)
    return path or os.path.expanduser("~")


def is_likely_binary(file_path):
    """Check if file is likely binary by reading first bytes."""
    try:
        with open(file_path, 'rb') as f:
            initial_bytes = f.read(512)
    except OSError:
        # let the caller report the real error when it opens the file
        return False

    for sig in BINARY_SIGNATURES:
        if initial_bytes.startswith(sig):
            return True
    return b'\x00' in initial_bytes


class Document(QObject):
    """The edited text, the file it belongs to and whether it has changed since.

    Signals:
        changed: the text was modified for the first time since the last
            new/load/save.
        saved: the text was written to disk.
        file_changed: the document now belongs to another file.
    """

    changed = pyqtSignal()
    saved = pyqtSignal()
    file_changed = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._file_path = None
        self._modified = False
        self._loading = False
        self._document = QTextDocument(self)
        self._document.setDocumentLayout(QPlainTextDocumentLayout(self._document))
        self._document.contentsChanged.connect(self._on_contents_changed)

    @property
    def file_path(self):
        return self._file_path

    @property
    def document(self):
        return self._document

    @property
    def is_modified(self):
        return self._modified

    @is_modified.setter
    def is_modified(self, value):
        self._modified = value

    @property
    def display_name(self):
        if self._file_path:
            return os.path.basename(self._file_path)
        return DEFAULT_FILENAME

    def text(self):
        return self._document.toPlainText()

    def new(self, file_path=None):
        """Start an empty document, optionally bound to file_path."""
        self._replace_text("")
        self._set_file_path(file_path)

    def load(self, file_path):
        """Replace the text with the contents of file_path.

        Raises OSError or UnicodeDecodeError when the file cannot be read;
        the document is left untouched in that case.
        """
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
        self._replace_text(content)
        self._set_file_path(file_path)
        logger.info("Loaded %s (%d characters)", file_path, len(content))

    def save(self, file_path=None):
        """Write the text to file_path, or to the current file if not given."""
        path = file_path or self._file_path
        if not path:
            raise ValueError("document has no file path")
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.text())
        self._modified = False
        logger.info("Saved %s", path)
        self.saved.emit()
        if path != self._file_path:
            self._set_file_path(path)

    def _replace_text(self, text):
        self._loading = True
        try:
            self._document.setPlainText(text)
        finally:
            self._loading = False
        self._document.clearUndoRedoStacks()
        self._modified = False

    def _set_file_path(self, file_path):
        self._file_path = file_path
        self.file_changed.emit(file_path or "")

    def _on_contents_changed(self):
        if self._loading or self._modified:
            return
        self._modified = True
        self.changed.emit()


class CodeEditor(QPlainTextEdit):
    """Plain text editor with auto-indent, soft tabs and auto-completion."""

    ENTER_KEYS = (Qt.Key_Return, Qt.Key_Enter)

    def __init__(self, doc=None, parent=None):
        super().__init__(parent)
        self._doc = doc if doc is not None else Document(self)
        self.state = EditorState()
        self._enter_down = False

        self.setDocument(self._doc.document)
        self._setup_editor()

    def _setup_editor(self):
        """Configure editor appearance and behavior."""
        font = QFont("Monospace", 11)
        font.setStyleHint(QFont.Monospace)
        self.setFont(font)
        self.setTabStopDistance(TAB_WIDTH * self.fontMetrics().horizontalAdvance(' '))
        self.setLineWrapMode(QPlainTextEdit.NoWrap)

    @property
    def doc(self):
        return self._doc

    def line_and_column(self):
        """Text of the line holding the selection start, and the column in it."""
        start = self.textCursor().selectionStart()
        block = self.document().findBlock(start)
        return block.text(), start - block.position()

    def apply_edit(self, edit):
        """Apply an Edit from the heuristics at the current cursor."""
        cursor = self.textCursor()
        if edit.erase:
            start = cursor.selectionStart()
            cursor.setPosition(start - edit.erase)
            cursor.setPosition(start, QTextCursor.KeepAnchor)
        cursor.insertText(edit.text)
        if edit.back:
            cursor.movePosition(QTextCursor.Left, QTextCursor.MoveAnchor, edit.back)
        self.setTextCursor(cursor)

    def insert_soft_tab(self):
        """Insert spaces up to the next tab stop."""
        _, column = self.line_and_column()
        self.apply_edit(insert_tab(column))

    def remove_soft_tab(self):
        """Remove spaces back to the previous tab stop, if there are only spaces."""
        cursor = self.textCursor()
        cursor.setPosition(cursor.selectionStart())
        self.setTextCursor(cursor)
        line, column = self.line_and_column()
        edit = remove_tab(line, column)
        if edit is not None:
            self.apply_edit(edit)

    def keyPressEvent(self, event):
        """Handle tab keys, remember the indent on Enter and auto-complete characters."""
        key = event.key()
        modifiers = event.modifiers()

        if modifiers & Qt.ControlModifier and not modifiers & Qt.AltModifier:
            if key == Qt.Key_T:
                self.insert_soft_tab()
                return
            if key == Qt.Key_R:
                self.remove_soft_tab()
                return
            super().keyPressEvent(event)
            return

        if key in (Qt.Key_Tab, Qt.Key_Backtab):
            # a typed tab still counts as the last character
            self.state.char_typed('\t', *self.line_and_column())
            if key == Qt.Key_Tab:
                self.insert_soft_tab()
            else:
                self.remove_soft_tab()
            return

        if key in self.ENTER_KEYS and not modifiers & Qt.ShiftModifier:
            self.state.enter_pressed(self.textCursor().block().text())
            self._enter_down = True

        text = event.text()
        if text:
            line, column = self.line_and_column()
            edit = self.state.char_typed(text, line, column)
            if edit is not None:
                self.apply_edit(edit)
                return

        super().keyPressEvent(event)

    def keyReleaseEvent(self, event):
        """Indent the new line like the one Enter was pressed on."""
        if event.key() in self.ENTER_KEYS and self._enter_down:
            self._enter_down = False
            self.apply_edit(self.state.enter_released())
        super().keyReleaseEvent(event)


class TextEditor(QMainWindow):
    """Main window showing the file name, the editor and the help panel."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.setGeometry(100, 100, 800, 600)

        self.doc = Document(self)
        self.doc.changed.connect(self._on_document_changed)
        self.doc.saved.connect(self._on_document_saved)
        self.doc.file_changed.connect(self._on_file_changed)

        self._setup_ui()
        self._setup_menu()
        self._setup_statusbar()
        self._update_file_label()

    def _setup_ui(self):
        """Set up the file label, editor and help panel."""
        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        layout = QVBoxLayout(self.central_widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.file_label = QLabel()
        self.file_label.setContentsMargins(4, 2, 4, 2)

        self.editor = CodeEditor(self.doc)

        self.help_view = QPlainTextEdit()
        self.help_view.setReadOnly(True)
        self.help_view.setLineWrapMode(QPlainTextEdit.NoWrap)
        self.help_view.setFont(self.editor.font())
        self.help_view.setPlainText(HELP_TEXT)
        self.help_view.hide()

        layout.addWidget(self.file_label)
        layout.addWidget(self.editor)
        layout.addWidget(self.help_view)

    def _setup_menu(self):
        """Set up the menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")

        new_action = QAction("&New", self)
        new_action.setShortcut(QKeySequence.New)
        new_action.triggered.connect(self.new_file)
        file_menu.addAction(new_action)

        open_action = QAction("&Open...", self)
        open_action.setShortcut(QKeySequence.Open)
        open_action.triggered.connect(lambda: self.open_file())
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        self.save_action = QAction("&Save", self)
        self.save_action.setShortcut(QKeySequence.Save)
        self.save_action.triggered.connect(self.save_file)
        file_menu.addAction(self.save_action)

        self.save_as_action = QAction("Save &As...", self)
        self.save_as_action.setShortcut("Ctrl+W")
        self.save_as_action.triggered.connect(self.save_file_as)
        file_menu.addAction(self.save_as_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut("Ctrl+Q")
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        edit_menu = menubar.addMenu("&Edit")

        cut_action = QAction("Cu&t", self)
        cut_action.setShortcut(QKeySequence.Cut)
        cut_action.triggered.connect(self.editor.cut)
        edit_menu.addAction(cut_action)

        copy_action = QAction("&Copy", self)
        copy_action.setShortcut(QKeySequence.Copy)
        copy_action.triggered.connect(self.editor.copy)
        edit_menu.addAction(copy_action)

        paste_action = QAction("&Paste", self)
        paste_action.setShortcut(QKeySequence.Paste)
        paste_action.triggered.connect(self.editor.paste)
        edit_menu.addAction(paste_action)

        select_all_action = QAction("Select &All", self)
        select_all_action.setShortcut(QKeySequence.SelectAll)
        select_all_action.triggered.connect(self.editor.selectAll)
        edit_menu.addAction(select_all_action)

        edit_menu.addSeparator()

        insert_tab_action = QAction("&Insert Tab", self)
        insert_tab_action.setShortcut("Ctrl+T")
        insert_tab_action.triggered.connect(self.editor.insert_soft_tab)
        edit_menu.addAction(insert_tab_action)

        remove_tab_action = QAction("&Remove Tab", self)
        remove_tab_action.setShortcut("Ctrl+R")
        remove_tab_action.triggered.connect(self.editor.remove_soft_tab)
        edit_menu.addAction(remove_tab_action)

        help_menu = menubar.addMenu("&Help")

        self.help_action = QAction("&Help", self)
        self.help_action.setShortcut("F1")
        self.help_action.triggered.connect(self.toggle_help)
        help_menu.addAction(self.help_action)

    def _setup_statusbar(self):
        """Set up the status bar."""
        self.statusbar = QStatusBar()
        self.setStatusBar(self.statusbar)
        self.statusbar.showMessage("Ready")

    def _update_file_label(self):
        """Show the file name, colored by the modified state."""
        name = self.doc.display_name
        modified = self.doc.is_modified
        self.file_label.setText(name)
        self.file_label.setStyleSheet(
            f"color: {MODIFIED_COLOR if modified else CLEAN_COLOR};")
        self.setWindowTitle(f"{APP_NAME} - {name}{' *' if modified else ''}")

    def _on_document_changed(self):
        self._update_file_label()

    def _on_document_saved(self):
        self._update_file_label()
        self.statusbar.showMessage("File saved", 3000)

    def _on_file_changed(self, file_path):
        logger.debug("Document file is now %r", file_path)
        self._update_file_label()

    def _dialog_path(self):
        """Path the file dialogs start from."""
        if self.doc.file_path:
            return self.doc.file_path
        return os.path.join(default_directory(), DEFAULT_FILENAME)

    def _maybe_save(self):
        """Ask to save unsaved changes. Returns False if the user cancelled."""
        if getattr(self, '_skip_save_check', False):
            return True
        if not self.doc.is_modified:
            return True
        reply = QMessageBox.question(
            self, APP_NAME,
            "You have unsaved changes. Do you want to save?",
            QMessageBox.Save | QMessageBox.Discard | QMessageBox.Cancel
        )
        if reply == QMessageBox.Cancel:
            return False
        if reply == QMessageBox.Save:
            return self.save_file()
        return True

    def new_file(self):
        """Start a new document in the default directory."""
        if not self._maybe_save():
            return False
        self.doc.new(os.path.join(default_directory(), DEFAULT_FILENAME))
        logger.info("Started new document %s", self.doc.file_path)
        self.statusbar.showMessage("New file", 3000)
        return True

    def open_file(self, file_path=None):
        """Open file_path, or a file chosen in a dialog when not given."""
        if not self._maybe_save():
            return False
        if not file_path:
            file_path, _ = QFileDialog.getOpenFileName(
                self, "Open text file", os.path.dirname(self._dialog_path()),
                OPEN_FILTERS
            )
            if not file_path:
                return False

        if not os.path.exists(file_path):
            logger.info("%s does not exist, starting a new document", file_path)
            self.doc.new(file_path)
            return True

        if is_likely_binary(file_path):
            logger.warning("Refusing to open binary file %s", file_path)
            QMessageBox.warning(
                self, "Incompatible File",
                f"Cannot open '{os.path.basename(file_path)}': Binary or incompatible file type."
            )
            return False

        try:
            self.doc.load(file_path)
        except (OSError, UnicodeError) as e:
            logger.warning("Could not open %s: %s", file_path, e)
            QMessageBox.critical(self, "Error", f"Could not open file:\n{str(e)}")
            return False

        self.editor.moveCursor(QTextCursor.Start)
        self.statusbar.showMessage(f"Opened {file_path}", 3000)
        return True

    def open_on_startup(self, file_path):
        """Open the file given on the command line, if it exists."""
        path = os.path.abspath(file_path)
        if not os.path.isfile(path):
            logger.error("File not found: %s", path)
            QMessageBox.critical(self, APP_NAME, f"File not found: {path}")
            return False
        return self.open_file(path)

    def save_file(self):
        """Save the document to its file; False if unsaved changes remain."""
        if not self.doc.is_modified:
            return True
        if not self.doc.file_path:
            return self.save_file_as()
        return self._save_to(self.doc.file_path)

    def save_file_as(self):
        """Save the document under a name chosen in a dialog."""
        file_path, _ = QFileDialog.getSaveFileName(
            self, "Save File", self._dialog_path(), SAVE_FILTERS
        )
        if not file_path:
            return False
        return self._save_to(file_path)

    def _save_to(self, file_path):
        try:
            self.doc.save(file_path)
        except OSError as e:
            logger.exception("Could not save %s", file_path)
            QMessageBox.critical(self, "Error", f"Could not save file:\n{str(e)}")
            return False
        return True

    def toggle_help(self):
        """Swap the editor for the help text and back."""
        if self.help_view.isHidden():
            self.editor.hide()
            self.help_view.show()
            self.help_view.moveCursor(QTextCursor.Start)
        else:
            self.help_view.hide()
            self.editor.show()
            self.editor.setFocus()

    def closeEvent(self, event):
        """Handle window close event."""
        if self._maybe_save():
            event.accept()
        else:
            event.ignore()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="liquorice", description="A minimalistic text editor")
    parser.add_argument("file", nargs="?", help="file to open on startup")
    return parser.parse_args(argv)


def log_level():
    """Logging level named by LIQUORICE_LOG_LEVEL, WARNING if unset or unknown."""
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "WARNING").upper())
    return level if isinstance(level, int) else logging.WARNING


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(level=log_level(), format=LOG_FORMAT)

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    window = TextEditor()
    window.show()
    if args.file:
        window.open_on_startup(args.file)

    sys.exit(app.exec_())


if __name__ == "__main__":  # pragma: no cover
    main()
