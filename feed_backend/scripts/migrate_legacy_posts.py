#!/usr/bin/env python
"""
레거시 게시글 마이그레이션 스크립트

최상위 posts 컬렉션(좋아요/댓글 배열 내장)의 문서를
companies/{companyId}/posts 하위 컬렉션 구조로 복사합니다.

사용 예:
    python scripts/migrate_legacy_posts.py --dry-run
    python scripts/migrate_legacy_posts.py --company-id acme --batch-size 200
"""

import argparse
import logging
import os

from dotenv import load_dotenv
import firebase_admin
from firebase_admin import credentials, firestore

from company_feed.core.config import config_by_name
from company_feed.services.legacy_migration import LegacyPostMigrator, DEFAULT_BATCH_SIZE

logger = logging.getLogger("migrate_legacy_posts")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate legacy embedded-array posts to company subcollections.")
    parser.add_argument(
        "--company-id",
        help="Only migrate posts of this company (defaults to every company).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help="Maximum writes per Firestore batch (1-500).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count what would be migrated without writing anything.",
    )
    return parser.parse_args()


def _init_firestore():
    config = config_by_name[os.getenv('FLASK_ENV', 'development')]
    cred_path = config.FIREBASE_CREDENTIALS_PATH
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    if not firebase_admin._apps:
        firebase_admin.initialize_app(credentials.Certificate(cred_path))
    return firestore.client()


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s - %(message)s",
    )
    args = _parse_args()

    migrator = LegacyPostMigrator(_init_firestore(), batch_size=args.batch_size)
    report = migrator.migrate(company_id=args.company_id, dry_run=args.dry_run)

    logger.info(report.summary())
    for post_id in report.skipped_invalid:
        logger.warning(f"skipped invalid legacy post: {post_id}")


if __name__ == "__main__":
    main()
