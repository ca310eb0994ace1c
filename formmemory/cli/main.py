"""CLI entry point for form memory application."""
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from formmemory.domain.exceptions import FormMemoryError
from formmemory.domain.page import FormElement, Page, build_form, load_page
from formmemory.services.controller import FormMemoryController
from formmemory.services.manager import FormDataManager
from formmemory.services.messaging import MessageHandler, StorageClient
from formmemory.services.storage import StorageBackend
from formmemory.utils.scheduler import ManualScheduler

USAGE = """Usage: python run_cli.py <command> [args]

Commands:
  list [query]             List saved forms, optionally filtered by URL
  show <key>               Show every saved field of one form
  delete <key>             Delete one saved form
  clear                    Delete every saved form
  export <path>            Export saved forms to a .json or .xlsx file
  simulate <scenario.json> Replay page events against the save prompt"""


def _format_time(saved_at: int) -> str:
    return datetime.fromtimestamp(saved_at / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _find_field(form: FormElement, name: str, value: Any = None):
    for element in form.fields:
        if element.resolved_name() != name:
            continue
        if element.is_radio and value is not None and element.value != value:
            continue
        return element
    raise ValueError(f"No field named '{name}' in form")


async def list_forms(client: StorageClient, query: str = "") -> None:
    manager = FormDataManager(client)
    await manager.load()
    manager.filter(query)
    stats = manager.stats()
    print(f"Saved forms: {stats.total_forms} (storage used: {stats.usage_percent}%)")
    if stats.near_quota:
        print("Warning: storage is nearly full")
    for key, entry in manager.entries():
        preview = manager.preview(key, entry)
        print(f"\n{preview.domain}{preview.path}  [{_format_time(preview.saved_at)}]")
        print(f"  key: {key}")
        for name, value in preview.fields:
            print(f"  {name}: {value}")
        if preview.more_count:
            print(f"  ... {preview.more_count} more fields")


async def show_form(client: StorageClient, key: str) -> bool:
    manager = FormDataManager(client)
    await manager.load()
    entry = manager.view(key)
    if entry is None:
        print(f"No saved form for key '{key}'")
        return False
    print(f"URL: {entry.url}")
    print(f"Saved at: {_format_time(entry.saved_at)}")
    print("Fields:")
    for name, value in entry.fields.items():
        print(f"  {name}: {value}")
    return True


async def export_forms(client: StorageClient, path: str) -> None:
    manager = FormDataManager(client)
    await manager.load()
    output = manager.export(path)
    print(f"✓ Exported {len(manager.all_entries)} forms to: {output}")


def _run_event(controller: FormMemoryController, scheduler: ManualScheduler, event: Dict[str, Any]) -> None:
    page = controller.page
    kind = event["type"]
    if kind == "type":
        _find_field(page.forms[event["form"]], event["field"]).type_text(str(event["value"]))
    elif kind == "click":
        _find_field(page.forms[event["form"]], event["field"], event.get("value")).click()
    elif kind == "submit":
        page.forms[event["form"]].submit()
    elif kind == "wait":
        scheduler.advance(float(event["seconds"]))
    elif kind == "save":
        for prompt in list(page.prompts):
            prompt.click_save()
    elif kind == "dismiss":
        for prompt in list(page.prompts):
            prompt.click_dismiss()
    elif kind == "add_form":
        page.add_form(build_form(event["form"]))
    else:
        raise ValueError(f"Unknown event type '{kind}'")


async def simulate(client: StorageClient, scenario: Dict[str, Any]) -> Page:
    """Load a page, restore saved values and replay the scenario's events."""
    page = load_page(scenario["page"])
    scheduler = ManualScheduler()
    controller = FormMemoryController(page, client, scheduler=scheduler)

    results = await controller.start()
    for result in results:
        print(f"Restored {result.applied_count} fields from {result.key}")

    for event in scenario.get("events", []):
        _run_event(controller, scheduler, event)
        await controller.tracker.drain()
        offer = controller.tracker.offer
        status = f" prompt={offer.prompt.status.value}" if offer else ""
        print(f"{event['type']:<9} -> {controller.tracker.state.value}{status}")

    controller.shutdown()
    for record in controller.records():
        entry = await client.get_form_data(record.key)
        if entry is not None:
            print(f"{record.key}: {json.dumps(entry.fields, ensure_ascii=False)}")
    return page


def main(argv=None) -> int:
    """Main CLI function."""
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        print(USAGE)
        return 1

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    command, args = argv[0], argv[1:]
    client = StorageClient(MessageHandler(StorageBackend.from_config()))

    try:
        if command == "list":
            asyncio.run(list_forms(client, args[0] if args else ""))
        elif command == "show" and args:
            return 0 if asyncio.run(show_form(client, args[0])) else 1
        elif command == "delete" and args:
            asyncio.run(client.delete_form_data(args[0]))
            print(f"Deleted: {args[0]}")
        elif command == "clear":
            asyncio.run(client.clear_all_data())
            print("All saved form data cleared")
        elif command == "export" and args:
            asyncio.run(export_forms(client, args[0]))
        elif command == "simulate" and args:
            scenario_path = Path(args[0])
            if not scenario_path.exists():
                print(f"Error: Scenario file '{args[0]}' not found.")
                return 1
            scenario = json.loads(scenario_path.read_text(encoding="utf-8"))
            asyncio.run(simulate(client, scenario))
        else:
            print(USAGE)
            return 1
    except (FormMemoryError, ValueError, KeyError, IndexError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
