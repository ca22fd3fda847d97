"""
Main entry point for the boxsync reconciliation service.
"""
import sys
import json
from pathlib import Path
from typing import List
from loguru import logger

from .exceptions import BoxSyncError
from .models.config import SyncConfig
from .services.action_codec import parse_file_actions, dump_file_action
from .services.action_compactor import compact_file_actions, materialize_files
from .services.sync_service import SyncService


def setup_logging(level: str = "INFO"):
    """Configure logging for the service."""
    # Remove default logger
    logger.remove()

    # Add console logger with appropriate format
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level
    )

    # Add file logger for debugging
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    logger.add(
        "logs/boxsync.log",
        rotation="10 MB",
        retention="7 days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG"
    )


def read_batch_file(batch_path: str) -> List[str]:
    """Read a JSON-lines batch file, one file action per non-empty line."""
    path = Path(batch_path)
    if not path.exists():
        raise FileNotFoundError(f"Batch file not found: {batch_path}")

    with open(path, 'r', encoding='utf-8') as batch_file:
        return [line.strip() for line in batch_file if line.strip()]


def require_args(args: List[str], count: int, usage: str) -> None:
    if len(args) < count:
        logger.error(f"Usage: python -m boxsync.main {usage}")
        sys.exit(1)


def run_compact(batch_path: str):
    """Print the compacted batch as JSON lines."""
    actions = parse_file_actions(read_batch_file(batch_path))
    simplified = compact_file_actions(actions)
    logger.info(f"Compacted {len(actions)} actions to {len(simplified)}")

    for action in simplified:
        print(dump_file_action(action))


def run_preview(batch_path: str):
    """Print the files a batch leaves behind."""
    actions = parse_file_actions(read_batch_file(batch_path))
    files = materialize_files(compact_file_actions(actions))
    print(json.dumps([file.to_dict() for file in files], indent=2))


def run_apply(config: SyncConfig, batch_path: str, session_key: str):
    """Apply a batch to the local database under a client session."""
    sync_service = SyncService(config)
    user, client = sync_service.account_service.authenticate_client(session_key)
    logger.info(f"Applying {batch_path} for user {user.email}")

    results = sync_service.sync_file_actions(read_batch_file(batch_path), client)
    logger.info(f"Sync Results: {json.dumps(results, indent=2, default=str)}")
    return results


def run_push(config: SyncConfig, batch_path: str, session_key: str):
    """Push a batch to a remote boxsync server."""
    from .clients.sync_api import SyncAPI

    api = SyncAPI(config.api_url)
    if not api.health_check():
        raise BoxSyncError(f"Sync API is not reachable at {config.api_url}")

    actions = parse_file_actions(read_batch_file(batch_path))
    results = api.push_file_actions(session_key, actions)
    logger.info(f"Sync Results: {json.dumps(results, indent=2, default=str)}")
    return results


def run_server(config: SyncConfig):
    """Serve the HTTP API with uvicorn."""
    import uvicorn
    from .api.server import create_app

    app = create_app(SyncService(config))
    logger.info(f"Starting boxsync API on {config.api_host}:{config.api_port}")
    uvicorn.run(app, host=config.api_host, port=config.api_port, log_level=config.log_level.lower())


def print_help():
    """Print help information for the CLI."""
    help_text = """
boxsync - Command Line Interface

USAGE:
    python -m boxsync.main [COMMAND] [ARGS]

COMMANDS:
    create-user EMAIL PASSWORD      Register a user
    create-client EMAIL PASSWORD    Log in and print a new client session key
    compact BATCH                   Print the compacted batch (JSON lines)
    preview BATCH                   Print the files a batch leaves behind
    apply BATCH SESSION_KEY         Apply a batch to the local database
    push BATCH SESSION_KEY          Push a batch to a remote server
    files SESSION_KEY               List the session owner's file index
    status                          Show service status and statistics
    serve                           Run the HTTP API
    help                            Show this help message

A BATCH file holds one JSON-encoded file action per line.

ENVIRONMENT VARIABLES:
    DATABASE_PATH         SQLite database path (default: data/boxsync.db)
    BOXSYNC_API_URL       Server URL used by push (default: http://localhost:8002)
    BOXSYNC_API_HOST      Bind address for serve (default: 0.0.0.0)
    BOXSYNC_API_PORT      Port for serve (default: 8002)
    CREATE_POLICY         reject or upsert for creations over existing paths (default: reject)
    BCRYPT_ROUNDS         bcrypt cost factor (default: 12)
    SESSION_KEY_BYTES     Random bytes per session key (default: 32)
    LOG_LEVEL             Console log level (default: INFO)
"""
    print(help_text)


def main():
    """Main entry point with command line argument handling."""
    config = SyncConfig.from_env()
    setup_logging(config.log_level)

    if len(sys.argv) < 2:
        print_help()
        return

    command = sys.argv[1].lower()
    args = sys.argv[2:]

    try:
        if command in ["help", "--help", "-h"]:
            print_help()
        elif command == "create-user":
            require_args(args, 2, "create-user EMAIL PASSWORD")
            user = SyncService(config).account_service.create_user(args[0], args[1])
            logger.info(f"Created user {user.id}: {user.email}")
        elif command == "create-client":
            require_args(args, 2, "create-client EMAIL PASSWORD")
            accounts = SyncService(config).account_service
            client = accounts.create_client(accounts.validate_user_password(args[0], args[1]))
            print(client.session_key)
        elif command == "compact":
            require_args(args, 1, "compact BATCH")
            run_compact(args[0])
        elif command == "preview":
            require_args(args, 1, "preview BATCH")
            run_preview(args[0])
        elif command == "apply":
            require_args(args, 2, "apply BATCH SESSION_KEY")
            run_apply(config, args[0], args[1])
        elif command == "push":
            require_args(args, 2, "push BATCH SESSION_KEY")
            run_push(config, args[0], args[1])
        elif command == "files":
            require_args(args, 1, "files SESSION_KEY")
            sync_service = SyncService(config)
            user, _ = sync_service.account_service.authenticate_client(args[0])
            files = sync_service.get_files(user)
            print(json.dumps([file.to_dict() for file in files], indent=2))
        elif command == "status":
            status = SyncService(config).get_sync_status()
            logger.info(f"Service Status: {json.dumps(status, indent=2)}")
        elif command == "serve":
            run_server(config)
        else:
            logger.error(f"Unknown command: {command}")
            logger.error("Use 'help' to see available commands")
            print_help()
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Command failed: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
