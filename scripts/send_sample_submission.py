"""Send a sample form submission to a locally running instance.

Usage:
  python scripts/send_sample_submission.py [--username demo] [--category Farmer] [--folder-type farmer]

Uses `PORT` from env (default 8000).
"""
import os
import argparse
import requests
from dotenv import load_dotenv

# load .env if present
load_dotenv()


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--username", default="demo")
    p.add_argument("--category", default="Farmer")
    p.add_argument("--folder-type", help="folderType query parameter (mapping strategy only)")
    p.add_argument("--workbook", action="store_true", help="Post to the append-to-workbook route")
    args = p.parse_args()

    port = int(os.getenv("PORT", "8000"))
    route = "append-to-workbook" if args.workbook else "append-to-sheet"
    url = f"http://127.0.0.1:{port}/google-sheets/{route}"

    submission = {
        "username": args.username,
        "imageType": args.category,
        "imageData": [
            {"name": "Sample Row", "quantity": 1, "date": "2026-01-01"},
            {"name": "Another Row", "quantity": 2, "date": "2026-01-02"},
        ],
    }
    params = {"folderType": args.folder_type} if args.folder_type else None

    r = requests.post(url, json=submission, params=params)
    try:
        print(r.status_code, r.json())
    except ValueError:
        print(r.status_code, r.text)


if __name__ == "__main__":
    main()
