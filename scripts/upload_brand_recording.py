import argparse
import asyncio
import os
import sys

# Add project root to path so we can import app
sys.path.append(os.getcwd())

from sqlalchemy.exc import SQLAlchemyError

from app.database import dispose_engine
from app.services.brand_records import get_brand_repository
from app.services.errors import PipelineError
from app.services.storage import get_storage_service


async def main(
    merchant_id: str,
    file_path: str,
    skip_db: bool,
    *,
    records=None,
    storage=None,
) -> int:
    if not os.path.exists(file_path):
        print(f"File '{file_path}' not found.")
        return 1

    records = records or get_brand_repository()
    storage = storage or get_storage_service()

    try:
        brand = await records.get_brand_by_merchant_id(merchant_id)
    except (SQLAlchemyError, OSError) as e:
        print(f"Brand lookup failed: {e}")
        return 1
    if brand is None:
        print(f"No brand found with merchant id {merchant_id}")
        return 1

    with open(file_path, "rb") as f:
        audio_bytes = f.read()

    print(f"Uploading {len(audio_bytes)} bytes for {brand.merchant_name} ({merchant_id})...")
    try:
        stored = await storage.upload_brand_recording(
            audio_bytes,
            merchant_name=brand.merchant_name,
            merchant_id=brand.merchant_id,
            interactive=False,
        )
    except PipelineError as e:
        print(f"Upload failed: {e}")
        return 1

    print(f"Object key: {stored.key}")
    print(f"URL: {stored.url}")
    if stored.placeholder:
        print("Storage is not configured; the brand record was left unchanged.")
        return 0
    if skip_db:
        return 0

    try:
        outcome = await records.apply_record_url(brand.merchant_id, stored.url)
    except (SQLAlchemyError, OSError) as e:
        print(f"Brand record not updated: {e}")
        print(f"The recording is still available at {stored.url}")
        return 2
    if outcome.success:
        print(f"Brand record updated ({outcome.strategy} path).")
        return 0
    print(f"Brand record not updated: {outcome.error}")
    print(f"The recording is still available at {stored.url}")
    return 2


async def run(args: argparse.Namespace) -> int:
    try:
        return await main(args.merchant_id, args.file, args.skip_db)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Upload an existing recording for a brand and store its URL."
    )
    parser.add_argument("merchant_id", help="merchant id of the target brand")
    parser.add_argument("file", help="path to the audio file to upload")
    parser.add_argument(
        "--skip-db",
        action="store_true",
        help="upload only, leave the brand record untouched",
    )
    sys.exit(asyncio.run(run(parser.parse_args())))
