"""
SQLite-backed store for manufacturers, crawl jobs, knowledge and catalog products.

Writes are per-entity upserts keyed by manufacturer (and SKU for catalog
products), so concurrent jobs for different manufacturers never conflict.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.config import settings
from ..core.logging import logger
from ..models.job import CrawlJob, JobStatus, ResultSummary, ScrapingStatus
from ..models.knowledge import (
    CatalogProduct,
    CompanyProfile,
    Manufacturer,
    ManufacturerKnowledge,
    StoreProduct,
)


def utc_now_iso() -> str:
    """Return current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class UpsertResult(str, Enum):
    """Outcome of a keyed write."""

    CREATED = "created"
    UPDATED = "updated"
    NOT_FOUND = "not_found"


class ManufacturerStore:
    """
    SQLite-based persistence for the web-intelligence pipeline.

    "Row does not exist" is reported as ``UpsertResult.NOT_FOUND``; any other
    database error propagates as ``sqlite3.Error``.
    """

    def __init__(self, db_path: str = None):
        """Initialize the store."""
        self.db_path = db_path or settings.DATABASE_PATH
        self._ensure_db_directory()
        self._init_database()
        logger.info(f"ManufacturerStore initialized with database at {self.db_path}")

    def _ensure_db_directory(self):
        """Ensure the database directory exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_database(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS manufacturers (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    website TEXT,
                    last_scraped TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS store_products (
                    id TEXT PRIMARY KEY,
                    manufacturer_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    sku TEXT,
                    category TEXT,
                    FOREIGN KEY (manufacturer_id) REFERENCES manufacturers(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS crawl_jobs (
                    id TEXT PRIMARY KEY,
                    manufacturer_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    seed_url TEXT,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    pages_scraped INTEGER DEFAULT 0,
                    products_found INTEGER DEFAULT 0,
                    result_summary TEXT,
                    error TEXT,
                    FOREIGN KEY (manufacturer_id) REFERENCES manufacturers(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS manufacturer_knowledge (
                    manufacturer_id TEXT PRIMARY KEY,
                    profile TEXT DEFAULT '{}',
                    source_urls TEXT DEFAULT '[]',
                    raw_scraped_data TEXT DEFAULT '{}',
                    scraping_status TEXT NOT NULL,
                    scraped_at TEXT,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (manufacturer_id) REFERENCES manufacturers(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS catalog_products (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    manufacturer_id TEXT NOT NULL,
                    sku TEXT NOT NULL,
                    name TEXT NOT NULL,
                    product_url TEXT,
                    manual_url TEXT,
                    spec_sheet_url TEXT,
                    quick_start_url TEXT,
                    documents TEXT DEFAULT '[]',
                    matched_product_id TEXT,
                    match_confidence REAL,
                    match_method TEXT,
                    updated_at TEXT NOT NULL,
                    UNIQUE(manufacturer_id, sku)
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_products_manufacturer ON store_products(manufacturer_id)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_jobs_manufacturer ON crawl_jobs(manufacturer_id)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_jobs_status ON crawl_jobs(status)"
            )

            conn.commit()

    # ==================== Manufacturers ====================

    def add_manufacturer(
        self, name: str, website: str = None, manufacturer_id: str = None
    ) -> Manufacturer:
        """Insert a manufacturer (normally synced from the storefront)."""
        now = utc_now_iso()
        manufacturer_id = manufacturer_id or str(uuid.uuid4())

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO manufacturers (id, name, website, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
            """,
                (manufacturer_id, name, website, now, now),
            )
            conn.commit()

        return self.get_manufacturer(manufacturer_id)

    def get_manufacturer(self, manufacturer_id: str) -> Optional[Manufacturer]:
        """Get a manufacturer by ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM manufacturers WHERE id = ?", (manufacturer_id,)
            ).fetchone()

        if not row:
            return None
        return Manufacturer(
            id=row["id"],
            name=row["name"],
            website=row["website"],
            last_scraped=row["last_scraped"],
        )

    def list_manufacturers_needing_website(
        self, limit: int = 10, storefront_markers: List[str] = None
    ) -> List[Manufacturer]:
        """Manufacturers whose website is empty or points at the storefront itself."""
        markers = storefront_markers if storefront_markers is not None else settings.DISCOVERY_STOREFRONT_MARKERS
        clauses = ["website IS NULL", "website = ''"]
        params: List[Any] = []
        for marker in markers:
            clauses.append("website LIKE ?")
            params.append(f"%{marker}%")
        params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT id FROM manufacturers
                WHERE {" OR ".join(clauses)}
                ORDER BY name ASC
                LIMIT ?
            """,
                params,
            ).fetchall()

        return [self.get_manufacturer(row["id"]) for row in rows]

    def update_manufacturer_website(self, manufacturer_id: str, website: str) -> UpsertResult:
        """Set a manufacturer's website."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE manufacturers SET website = ?, updated_at = ? WHERE id = ?",
                (website, utc_now_iso(), manufacturer_id),
            )
            conn.commit()
            return UpsertResult.UPDATED if cursor.rowcount else UpsertResult.NOT_FOUND

    def mark_manufacturer_scraped(self, manufacturer_id: str) -> UpsertResult:
        """Record when the manufacturer's site was last crawled."""
        now = utc_now_iso()
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE manufacturers SET last_scraped = ?, updated_at = ? WHERE id = ?",
                (now, now, manufacturer_id),
            )
            conn.commit()
            return UpsertResult.UPDATED if cursor.rowcount else UpsertResult.NOT_FOUND

    # ==================== Store products ====================

    def add_store_product(
        self,
        manufacturer_id: str,
        name: str,
        sku: str = None,
        category: str = None,
        product_id: str = None,
    ) -> StoreProduct:
        """Insert or replace a storefront product."""
        product_id = product_id or str(uuid.uuid4())
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO store_products (id, manufacturer_id, name, sku, category)
                VALUES (?, ?, ?, ?, ?)
            """,
                (product_id, manufacturer_id, name, sku, category),
            )
            conn.commit()

        return StoreProduct(
            id=product_id,
            manufacturer_id=manufacturer_id,
            name=name,
            sku=sku,
            category=category,
        )

    def get_store_products(self, manufacturer_id: str, limit: int = None) -> List[StoreProduct]:
        """Known storefront products of one manufacturer."""
        query = "SELECT * FROM store_products WHERE manufacturer_id = ? ORDER BY name ASC"
        params: List[Any] = [manufacturer_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            StoreProduct(
                id=row["id"],
                manufacturer_id=row["manufacturer_id"],
                name=row["name"],
                sku=row["sku"],
                category=row["category"],
            )
            for row in rows
        ]

    # ==================== Crawl jobs ====================

    def create_job(self, manufacturer_id: str, seed_url: str = None) -> CrawlJob:
        """Create a job in the running state."""
        job_id = str(uuid.uuid4())
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO crawl_jobs (id, manufacturer_id, status, seed_url, started_at)
                VALUES (?, ?, ?, ?, ?)
            """,
                (job_id, manufacturer_id, JobStatus.RUNNING.value, seed_url, utc_now_iso()),
            )
            conn.commit()

        logger.info(f"Created crawl job {job_id} for manufacturer {manufacturer_id}")
        return self.get_job(job_id)

    def get_job(self, job_id: str) -> Optional[CrawlJob]:
        """Get a job by ID."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM crawl_jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def get_jobs_for_manufacturer(self, manufacturer_id: str, limit: int = 20) -> List[CrawlJob]:
        """Job history for a manufacturer, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM crawl_jobs WHERE manufacturer_id = ?
                ORDER BY started_at DESC LIMIT ?
            """,
                (manufacturer_id, limit),
            ).fetchall()
        return [self._row_to_job(row) for row in rows]

    def get_running_job_for_manufacturer(self, manufacturer_id: str) -> Optional[CrawlJob]:
        """The running job of a manufacturer, if any."""
        with self._get_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM crawl_jobs WHERE manufacturer_id = ? AND status = ?
                ORDER BY started_at DESC LIMIT 1
            """,
                (manufacturer_id, JobStatus.RUNNING.value),
            ).fetchone()
        return self._row_to_job(row) if row else None

    def get_running_jobs(self) -> List[CrawlJob]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM crawl_jobs WHERE status = ?", (JobStatus.RUNNING.value,)
            ).fetchall()
        return [self._row_to_job(row) for row in rows]

    def update_job(
        self,
        job_id: str,
        status: JobStatus = None,
        pages_scraped: int = None,
        products_found: int = None,
        result_summary: ResultSummary = None,
        error: str = None,
        completed: bool = False,
    ) -> UpsertResult:
        """Update selected job columns."""
        updates = []
        params: List[Any] = []

        if status is not None:
            updates.append("status = ?")
            params.append(status.value)
        if pages_scraped is not None:
            updates.append("pages_scraped = ?")
            params.append(pages_scraped)
        if products_found is not None:
            updates.append("products_found = ?")
            params.append(products_found)
        if result_summary is not None:
            updates.append("result_summary = ?")
            params.append(result_summary.model_dump_json())
        if error is not None:
            updates.append("error = ?")
            params.append(error)
        if completed:
            updates.append("completed_at = ?")
            params.append(utc_now_iso())

        if not updates:
            return UpsertResult.UPDATED if self.get_job(job_id) else UpsertResult.NOT_FOUND

        params.append(job_id)
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE crawl_jobs SET {', '.join(updates)} WHERE id = ?", params
            )
            conn.commit()
            return UpsertResult.UPDATED if cursor.rowcount else UpsertResult.NOT_FOUND

    def _row_to_job(self, row) -> CrawlJob:
        """Convert a database row to a CrawlJob."""
        summary = row["result_summary"]
        return CrawlJob(
            id=row["id"],
            manufacturer_id=row["manufacturer_id"],
            status=JobStatus(row["status"]),
            seed_url=row["seed_url"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            pages_scraped=row["pages_scraped"] or 0,
            products_found=row["products_found"] or 0,
            result_summary=ResultSummary.model_validate_json(summary) if summary else None,
            error=row["error"],
        )

    # ==================== Knowledge ====================

    def get_knowledge(self, manufacturer_id: str) -> Optional[ManufacturerKnowledge]:
        """Get the knowledge record of a manufacturer."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM manufacturer_knowledge WHERE manufacturer_id = ?",
                (manufacturer_id,),
            ).fetchone()

        if not row:
            return None
        return ManufacturerKnowledge(
            manufacturer_id=row["manufacturer_id"],
            profile=CompanyProfile.model_validate_json(row["profile"] or "{}"),
            source_urls=json.loads(row["source_urls"] or "[]"),
            raw_scraped_data=json.loads(row["raw_scraped_data"] or "{}"),
            scraping_status=ScrapingStatus(row["scraping_status"]),
            scraped_at=row["scraped_at"],
        )

    def upsert_knowledge(self, knowledge: ManufacturerKnowledge) -> UpsertResult:
        """Create or overwrite the whole knowledge record."""
        existed = self.get_knowledge(knowledge.manufacturer_id) is not None
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO manufacturer_knowledge
                (manufacturer_id, profile, source_urls, raw_scraped_data, scraping_status, scraped_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(manufacturer_id) DO UPDATE SET
                    profile = excluded.profile,
                    source_urls = excluded.source_urls,
                    raw_scraped_data = excluded.raw_scraped_data,
                    scraping_status = excluded.scraping_status,
                    scraped_at = excluded.scraped_at,
                    updated_at = excluded.updated_at
            """,
                (
                    knowledge.manufacturer_id,
                    knowledge.profile.model_dump_json(),
                    json.dumps(knowledge.source_urls),
                    json.dumps(knowledge.raw_scraped_data, default=str),
                    knowledge.scraping_status.value,
                    knowledge.scraped_at.isoformat() if knowledge.scraped_at else None,
                    utc_now_iso(),
                ),
            )
            conn.commit()
        return UpsertResult.UPDATED if existed else UpsertResult.CREATED

    def update_knowledge(
        self,
        manufacturer_id: str,
        scraping_status: ScrapingStatus = None,
        source_urls: List[str] = None,
        mark_scraped: bool = False,
    ) -> UpsertResult:
        """Update selected knowledge columns; NOT_FOUND when no record exists."""
        updates = ["updated_at = ?"]
        params: List[Any] = [utc_now_iso()]

        if scraping_status is not None:
            updates.append("scraping_status = ?")
            params.append(scraping_status.value)
        if source_urls is not None:
            updates.append("source_urls = ?")
            params.append(json.dumps(source_urls))
        if mark_scraped:
            updates.append("scraped_at = ?")
            params.append(utc_now_iso())

        params.append(manufacturer_id)
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE manufacturer_knowledge SET {', '.join(updates)} WHERE manufacturer_id = ?",
                params,
            )
            conn.commit()
            return UpsertResult.UPDATED if cursor.rowcount else UpsertResult.NOT_FOUND

    # ==================== Catalog products ====================

    def upsert_catalog_product(
        self, product: CatalogProduct, overwrite_match: bool = True
    ) -> UpsertResult:
        """
        Create or update a catalog product keyed by (manufacturer, pseudo-SKU).

        With ``overwrite_match=False`` an existing row keeps its match columns,
        so re-saving a document never erases an earlier accepted match.

        Raises:
            ValueError: a match at or below the confidence threshold
        """
        if product.matched_product_id is not None and (
            product.match_confidence is None
            or product.match_confidence <= settings.MATCH_CONFIDENCE_THRESHOLD
        ):
            raise ValueError(
                f"Refusing to persist match for {product.sku!r} with confidence "
                f"{product.match_confidence} (threshold {settings.MATCH_CONFIDENCE_THRESHOLD})"
            )

        existing = self._get_catalog_row(product.manufacturer_id, product.sku)
        documents = json.dumps([d.model_dump(mode="json") for d in product.documents])
        match_method = product.match_method.value if product.match_method else None
        now = utc_now_iso()

        with self._get_connection() as conn:
            if existing is None:
                conn.execute(
                    """
                    INSERT INTO catalog_products
                    (manufacturer_id, sku, name, product_url, manual_url, spec_sheet_url,
                     quick_start_url, documents, matched_product_id, match_confidence,
                     match_method, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        product.manufacturer_id,
                        product.sku,
                        product.name,
                        product.product_url,
                        product.manual_url,
                        product.spec_sheet_url,
                        product.quick_start_url,
                        documents,
                        product.matched_product_id,
                        product.match_confidence,
                        match_method,
                        now,
                    ),
                )
                conn.commit()
                return UpsertResult.CREATED

            # Keep previously stored document URLs when this write has none
            updates: Dict[str, Any] = {
                "name": product.name,
                "product_url": product.product_url or existing["product_url"],
                "manual_url": product.manual_url or existing["manual_url"],
                "spec_sheet_url": product.spec_sheet_url or existing["spec_sheet_url"],
                "quick_start_url": product.quick_start_url or existing["quick_start_url"],
                "documents": documents,
                "updated_at": now,
            }
            if overwrite_match:
                updates["matched_product_id"] = product.matched_product_id
                updates["match_confidence"] = product.match_confidence
                updates["match_method"] = match_method

            conn.execute(
                f"""
                UPDATE catalog_products SET {", ".join(f"{k} = ?" for k in updates)}
                WHERE manufacturer_id = ? AND sku = ?
            """,
                [*updates.values(), product.manufacturer_id, product.sku],
            )
            conn.commit()
            return UpsertResult.UPDATED

    def get_catalog_products(self, manufacturer_id: str) -> List[CatalogProduct]:
        """All catalog products of a manufacturer."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM catalog_products WHERE manufacturer_id = ? ORDER BY sku ASC",
                (manufacturer_id,),
            ).fetchall()
        return [self._row_to_catalog_product(row) for row in rows]

    def _get_catalog_row(self, manufacturer_id: str, sku: str):
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT * FROM catalog_products WHERE manufacturer_id = ? AND sku = ?",
                (manufacturer_id, sku),
            ).fetchone()

    def _row_to_catalog_product(self, row) -> CatalogProduct:
        return CatalogProduct(
            manufacturer_id=row["manufacturer_id"],
            name=row["name"],
            sku=row["sku"],
            product_url=row["product_url"],
            manual_url=row["manual_url"],
            spec_sheet_url=row["spec_sheet_url"],
            quick_start_url=row["quick_start_url"],
            documents=json.loads(row["documents"] or "[]"),
            matched_product_id=row["matched_product_id"],
            match_confidence=row["match_confidence"],
            match_method=row["match_method"],
        )


# Singleton instance
_store_instance: Optional[ManufacturerStore] = None


def get_store() -> ManufacturerStore:
    """Get or create the singleton ManufacturerStore instance."""
    global _store_instance
    if _store_instance is None:
        _store_instance = ManufacturerStore()
    return _store_instance
