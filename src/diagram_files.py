from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable

from src.diagram_document import dumps_document, parse_document_text
from src.diagram_errors import NoticeSurface, show_notice_dialog
from src.diagram_migrations import UnsupportedDocumentVersion
from src.diagram_store import DiagramStore

logger = logging.getLogger("diagram_files")

DEFAULT_DIAGRAM_FILENAME = "database-diagram.json"
INVALID_FILE_ISSUE = "invalid diagram file"
INVALID_FILE_HINT = "choose a .json diagram file saved by this application"


def _files_error(field: str, issue: str, hint: str) -> str:
    return f"Diagram file / {field}: {issue}. Fix: {hint}."


def diagram_file_notices(set_status: Callable[[str], None] | None = None) -> NoticeSurface:
    """Notice surface for file load/save/drop that shows a Tk error dialog."""
    return NoticeSurface(
        context="Diagram file",
        dialog_title="Diagram file error",
        show_dialog=show_notice_dialog,
        set_status=set_status,
    )


def save_diagram_file(store: DiagramStore, output_path_value: Any) -> Path:
    if not isinstance(output_path_value, str) or output_path_value.strip() == "":
        raise ValueError(
            _files_error(
                "Save path",
                "output path is required",
                f"choose a destination .json file (for example {DEFAULT_DIAGRAM_FILENAME})",
            )
        )
    output_path = Path(output_path_value.strip())
    if output_path.suffix.lower() != ".json":
        raise ValueError(
            _files_error(
                "Save path",
                f"unsupported extension '{output_path.suffix or '<none>'}'",
                "use a .json output file extension",
            )
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        output_path.write_text(dumps_document(store.export_diagram()), encoding="utf-8")
    except OSError as exc:
        raise ValueError(
            _files_error(
                "Save",
                f"failed to write diagram JSON ({exc})",
                "check destination path permissions and retry",
            )
        ) from exc
    logger.info("Saved diagram to %s", output_path)
    return output_path


def read_diagram_file(path_value: Any) -> dict[str, Any]:
    """Read and parse a diagram file without touching any store."""
    if not isinstance(path_value, str) or path_value.strip() == "":
        raise ValueError(_files_error("Load path", "path is required", "choose an existing .json diagram file"))
    path = Path(path_value.strip())
    if path.suffix.lower() != ".json":
        raise ValueError(
            _files_error(
                "Load path",
                f"unsupported extension '{path.suffix or '<none>'}'",
                "choose a .json diagram file",
            )
        )
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(
            _files_error("Load", f"failed to read '{path}' ({exc})", "choose an existing readable .json file")
        ) from exc
    return parse_document_text(text)


def load_diagram_file(
    store: DiagramStore,
    path_value: Any,
    *,
    notices: NoticeSurface | None = None,
) -> bool:
    """Replace the store's diagram with a file's content.

    An empty path means the picker was cancelled and returns False quietly.
    Any other failure surfaces one generic notice (documents from a newer
    release get the unsupported-version message instead) and leaves the
    diagram as it was.
    """
    if path_value is None or (isinstance(path_value, str) and path_value.strip() == ""):
        return False
    try:
        store.import_diagram(read_diagram_file(path_value))
    except UnsupportedDocumentVersion as exc:
        logger.warning("Diagram load refused for %s: %s", path_value, exc)
        if notices is not None:
            notices.emit_formatted(str(exc))
        return False
    except ValueError as exc:
        logger.warning("Diagram load failed for %s: %s", path_value, exc)
        if notices is not None:
            notices.emit(location="Load", issue=INVALID_FILE_ISSUE, hint=INVALID_FILE_HINT)
        return False
    return True


def load_diagram_drop(
    store: DiagramStore,
    paths: Iterable[str],
    *,
    notices: NoticeSurface | None = None,
) -> bool:
    dropped = [str(path) for path in paths]
    if len(dropped) != 1 or Path(dropped[0]).suffix.lower() != ".json":
        logger.warning("Rejected file drop: %s", dropped)
        if notices is not None:
            notices.emit(location="Drop", issue=INVALID_FILE_ISSUE, hint="drop exactly one .json diagram file")
        return False
    return load_diagram_file(store, dropped[0], notices=notices)


def ask_open_diagram_path(parent: object | None = None) -> str:
    from tkinter import filedialog

    return filedialog.askopenfilename(
        parent=parent,
        title="Open diagram",
        filetypes=[("Diagram JSON", "*.json"), ("All files", "*.*")],
    ) or ""


def ask_save_diagram_path(parent: object | None = None) -> str:
    from tkinter import filedialog

    return filedialog.asksaveasfilename(
        parent=parent,
        title="Save diagram",
        defaultextension=".json",
        initialfile=DEFAULT_DIAGRAM_FILENAME,
        filetypes=[("Diagram JSON", "*.json")],
    ) or ""


def open_diagram_with_picker(
    store: DiagramStore,
    *,
    ask_open: Callable[[], str] | None = None,
    notices: NoticeSurface | None = None,
) -> bool:
    chooser = ask_open or ask_open_diagram_path
    # the real picker runs under Tk, so failures get the Tk dialog too
    if ask_open is None and notices is None:
        notices = diagram_file_notices()
    return load_diagram_file(store, chooser(), notices=notices)


def save_diagram_with_picker(
    store: DiagramStore,
    *,
    ask_save: Callable[[], str] | None = None,
    notices: NoticeSurface | None = None,
) -> Path | None:
    chooser = ask_save or ask_save_diagram_path
    if ask_save is None and notices is None:
        notices = diagram_file_notices()
    path_value = chooser()
    if not path_value:
        return None
    try:
        return save_diagram_file(store, path_value)
    except ValueError as exc:
        logger.warning("Diagram save failed: %s", exc)
        if notices is not None:
            notices.emit_formatted(str(exc))
        return None
