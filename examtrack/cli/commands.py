"""Command implementations for the CLI interface."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TextIO

from examtrack.core.model import GroupEntry, LearningStatus, LooseEntry, Requirement
from examtrack.services.tracker import ExamTracker

STATUS_CHOICES = [e.value for e in LearningStatus]
STATUS_MARKS = {
    LearningStatus.TODO: " ",
    LearningStatus.LEARNING: "~",
    LearningStatus.DONE: "x",
}


@dataclass
class Command:
    """Describe a CLI command and its argument handler."""

    func: Callable[[argparse.Namespace, ExamTracker], int | None]
    help: str
    add_arguments: Callable[[argparse.ArgumentParser], None]


def _format_requirement(tracker: ExamTracker, req: Requirement, indent: str = "") -> str:
    state = tracker.get_state(req.id)
    mark = STATUS_MARKS[state.status]
    return f"{indent}[{mark}] {req.id:>3} {req.name} ({req.category.value}, {req.qtd})\n"


def _write_list(tracker: ExamTracker, out: TextIO) -> None:
    catalog = tracker.catalog
    groups = tracker.groups
    for entry in tracker.list_order:
        match entry:
            case LooseEntry(requirement_id=req_id):
                req = catalog.get(req_id)
                if req is not None:
                    out.write(_format_requirement(tracker, req))
            case GroupEntry(group_id=group_id):
                group = groups[group_id]
                marker = "+" if group.collapsed else "-"
                out.write(f"{marker} {group.name} <{group.id}>\n")
                for req_id in group.requirement_ids:
                    req = catalog.get(req_id)
                    if req is not None:
                        out.write(_format_requirement(tracker, req, "    "))


def cmd_list(args: argparse.Namespace, tracker: ExamTracker) -> None:
    """Print the requirement list with groups expanded."""

    if args.json:
        rows = []
        for req_id in tracker.flatten():
            req = tracker.catalog.get(req_id)
            state = tracker.get_state(req_id)
            rows.append(
                {
                    "id": req_id,
                    "name": req.name if req else "",
                    "status": state.status.value,
                    "media": len(state.media),
                }
            )
        sys.stdout.write(json.dumps(rows, ensure_ascii=False, indent=2) + "\n")
        return
    _write_list(tracker, sys.stdout)


def add_list_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``list`` command."""
    p.add_argument("--json", action="store_true", help="emit JSON")


def _require_known(tracker: ExamTracker, req_id: int) -> bool:
    if req_id in tracker.catalog:
        return True
    sys.stderr.write(f"unknown requirement: {req_id}\n")
    return False


def cmd_status(args: argparse.Namespace, tracker: ExamTracker) -> int:
    """Set the learning status of a requirement."""

    if not _require_known(tracker, args.requirement):
        return 1
    tracker.update_status(args.requirement, args.status)
    sys.stdout.write(f"{args.requirement} {args.status}\n")
    return 0


def add_status_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``status`` command."""
    p.add_argument("requirement", type=int, help="requirement id")
    p.add_argument("status", choices=STATUS_CHOICES, help="learning status")


def cmd_notes(args: argparse.Namespace, tracker: ExamTracker) -> int:
    """Show or replace the notes of a requirement."""

    if not _require_known(tracker, args.requirement):
        return 1
    if args.text is None:
        sys.stdout.write(tracker.get_state(args.requirement).notes + "\n")
        return 0
    tracker.update_notes(args.requirement, args.text)
    return 0


def add_notes_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``notes`` command."""
    p.add_argument("requirement", type=int, help="requirement id")
    p.add_argument("text", nargs="?", help="new notes; omit to print current")


def cmd_group(args: argparse.Namespace, tracker: ExamTracker) -> int:
    """Group loose requirements under a name."""

    group_id = tracker.create_group(args.name, args.requirements)
    if group_id is None:
        sys.stderr.write("cannot group: name is empty or a requirement is not loose\n")
        return 1
    sys.stdout.write(f"{group_id}\n")
    return 0


def add_group_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``group`` command."""
    p.add_argument("name", help="group name")
    p.add_argument("requirements", type=int, nargs="+", help="requirement ids")


def cmd_ungroup(args: argparse.Namespace, tracker: ExamTracker) -> int:
    """Dissolve a group keeping its requirements."""

    if tracker.get_group(args.group) is None:
        sys.stderr.write(f"group not found: {args.group}\n")
        return 1
    tracker.ungroup(args.group)
    return 0


def add_ungroup_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``ungroup`` command."""
    p.add_argument("group", help="group id")


def cmd_export(args: argparse.Namespace, tracker: ExamTracker) -> None:
    """Write a snapshot of the user's data."""

    text = tracker.export_data()
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")


def add_export_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``export`` command."""
    p.add_argument("-o", "--output", help="write snapshot to file")


def cmd_import(args: argparse.Namespace, tracker: ExamTracker) -> int:
    """Replace the user's data with a snapshot file."""

    text = Path(args.file).read_text(encoding="utf-8")
    if not tracker.import_data(text):
        sys.stderr.write(f"invalid snapshot: {args.file}\n")
        return 1
    sys.stdout.write("imported\n")
    return 0


def add_import_arguments(p: argparse.ArgumentParser) -> None:
    """Configure parser for the ``import`` command."""
    p.add_argument("file", help="snapshot produced by export")


COMMANDS: dict[str, Command] = {
    "list": Command(cmd_list, "show requirements", add_list_arguments),
    "status": Command(cmd_status, "set learning status", add_status_arguments),
    "notes": Command(cmd_notes, "show or edit notes", add_notes_arguments),
    "group": Command(cmd_group, "group requirements", add_group_arguments),
    "ungroup": Command(cmd_ungroup, "dissolve a group", add_ungroup_arguments),
    "export": Command(cmd_export, "export user data", add_export_arguments),
    "import": Command(cmd_import, "import user data", add_import_arguments),
}
