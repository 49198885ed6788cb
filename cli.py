import argparse
import json
import os
import shutil

from config import AppConfig
from db import UserRepository, WorkoutSessionRepository
from logger import setup_logger
from seed_sample_data import seed


def export_sessions(db_path: str, email: str, output_dir: str = ".") -> str:
    """Write the user's completed sessions, oldest first, to a JSON file."""
    user = UserRepository(db_path).fetch_by_email(email)
    if user is None:
        raise SystemExit(f"No user with email {email}")
    sessions = WorkoutSessionRepository(db_path).fetch_completed_between(user["id"])
    out_path = os.path.join(output_dir, f"sessions_{user['id']}.json")
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(sessions, f, indent=2)
    return out_path


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def serve(yaml_path: str, host: str, port: int) -> None:
    import uvicorn

    from rest_api import create_app

    uvicorn.run(create_app(yaml_path), host=host, port=port)


def main() -> None:
    parser = argparse.ArgumentParser(description="Fitbase utility commands")
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    srv = sub.add_parser("serve")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    sub.add_parser("seed")

    exp = sub.add_parser("export")
    exp.add_argument("--email", required=True)
    exp.add_argument("--out", default=".")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    args = parser.parse_args()
    config = AppConfig(args.yaml)
    setup_logger(config.log_level, config.log_file)

    if args.cmd == "serve":
        serve(args.yaml, args.host, args.port)
    elif args.cmd == "seed":
        seed(config.db_path)
    elif args.cmd == "export":
        print(export_sessions(config.db_path, args.email, args.out))
    elif args.cmd == "backup":
        backup_db(config.db_path, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, config.db_path)


if __name__ == "__main__":
    main()
