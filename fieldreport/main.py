import argparse
from collections.abc import Sequence

from fieldreport.config.settings import Settings
from fieldreport.database.connection import close_pool, init_pool
from fieldreport.database.schema import create_schema
from fieldreport.logging.logger import Log
from fieldreport.session.workspace import Workspace, build_workspace


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Field-service report sync core")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="List stored reports, most recent first")
    retry = commands.add_parser(
        "retry-export", help="Regenerate and upload artifacts of a completed report"
    )
    retry.add_argument("local_id", help="Local id of the completed report")
    return parser


def run_command(workspace: Workspace, args: argparse.Namespace) -> int:
    if args.command == "list":
        for document in workspace.list_documents():
            report_id = document.remote_sequence_id or "DRAFT"
            dirty = " *" if document.sync_state.is_dirty else ""
            print(
                f"{document.local_id}  {report_id:<12} {document.lifecycle_state.value:<10} "
                f"{document.updated_at.isoformat()}{dirty}"
            )
        return 0

    outcome = workspace.retry_export(args.local_id, progress=Log.info)
    print(outcome.message)
    return 0 if outcome.ok else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> initialize store -> run one command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    uses_postgres = settings.store_engine.lower() == "postgres"
    if uses_postgres:
        init_pool(settings)

    try:
        if uses_postgres:
            create_schema()
        workspace = build_workspace(settings)
        return run_command(workspace, args)
    finally:
        if uses_postgres:
            close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
