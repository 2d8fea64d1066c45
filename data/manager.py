"""
Centralized data management for audience tables and plan files.
"""

import logging
import json
import uuid
import hashlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass

import pandas as pd

from models.data_models import (
    Channel, METRIC_RECORD_FIELDS, PlanSummaryResult, ResolvedTactic,
)
from .audience import AudienceDataParser, AudienceTable

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PLAN_EXPORT_VERSION = 1


class PlanImportError(ValueError):
    """Raised when an imported plan file cannot be read."""
    pass


@dataclass
class DataCacheEntry:
    """Represents a cached audience table with metadata."""
    data: AudienceTable
    file_path: str
    file_hash: str
    last_updated: datetime
    last_accessed: datetime


class DataManager:
    """
    Centralized data access for the planner.

    Caches the audience table in memory (nothing is written to disk) and
    handles JSON import/export of tactic plans.
    """

    def __init__(self, audience_data_path: Optional[str] = None, cache_ttl_hours: int = 24,
                 default_channel: str = Channel.DIGITAL.value):
        """
        Initialize the DataManager.

        Args:
            audience_data_path: Audience population file (CSV or Excel)
            cache_ttl_hours: Time-to-live for the cached audience table in hours
            default_channel: Channel given to imported rows that have none
        """
        self.cache_ttl = timedelta(hours=cache_ttl_hours)
        self.default_channel = default_channel
        self.default_audience_path = audience_data_path or str(
            Path(__file__).parent / "dma_audience_sample.csv"
        )
        self.sample_plan_path = Path(__file__).parent / "sample_plan.json"

        self._audience_cache: Optional[DataCacheEntry] = None

    def _get_file_hash(self, file_path: str) -> str:
        """
        Calculate MD5 hash of a file for change detection.

        Args:
            file_path: Path to the file

        Returns:
            MD5 hash string
        """
        with open(file_path, 'rb') as f:
            file_hash = hashlib.md5()
            for chunk in iter(lambda: f.read(4096), b""):
                file_hash.update(chunk)
            return file_hash.hexdigest()

    def _is_cache_valid(self, cache_entry: Optional[DataCacheEntry], file_path: str) -> bool:
        """
        Check if cache entry is still valid.

        Args:
            cache_entry: Cache entry to validate
            file_path: Path to the source file

        Returns:
            True if cache is valid, False otherwise
        """
        if cache_entry is None or cache_entry.file_path != file_path:
            return False

        if datetime.now() - cache_entry.last_updated > self.cache_ttl:
            return False

        return cache_entry.file_hash == self._get_file_hash(file_path)

    # ------------------------------------------------------------------
    # Audience data
    # ------------------------------------------------------------------

    def load_audience_table(self, file_path: Optional[str] = None, force_refresh: bool = False) -> AudienceTable:
        """
        Load the audience table, using the in-memory cache when fresh.

        Args:
            file_path: Audience file; defaults to the configured path
            force_refresh: Re-parse even if the cache is valid

        Returns:
            AudienceTable for lookups

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is malformed
        """
        file_path = str(file_path or self.default_audience_path)

        if not force_refresh and self._is_cache_valid(self._audience_cache, file_path):
            self._audience_cache.last_accessed = datetime.now()
            logger.info("Using cached audience data")
            return self._audience_cache.data

        logger.info(f"Loading audience data from {file_path}")
        table = AudienceDataParser(file_path).parse()

        now = datetime.now()
        self._audience_cache = DataCacheEntry(
            data=table,
            file_path=file_path,
            file_hash=self._get_file_hash(file_path),
            last_updated=now,
            last_accessed=now,
        )
        return table

    # ------------------------------------------------------------------
    # Plan import / export
    # ------------------------------------------------------------------

    def export_plan(self, raw_tactics: List[Dict[str, Any]]) -> str:
        """
        Serialize tactic rows as a versioned plan document.

        Args:
            raw_tactics: Tactic records keyed by camelCase field names

        Returns:
            JSON text of {"version", "exportedAt", "tactics"}
        """
        document = {
            'version': PLAN_EXPORT_VERSION,
            'exportedAt': datetime.now(timezone.utc).isoformat(),
            'tactics': [self._normalize_record(t) for t in raw_tactics],
        }
        return json.dumps(document, indent=2)

    def import_plan(self, text: str) -> List[Dict[str, Any]]:
        """
        Read tactic rows from a plan document.

        Rows come back as raw records; field-level validation happens when
        the plan is calculated.

        Args:
            text: JSON text produced by export_plan

        Returns:
            List of tactic records

        Raises:
            PlanImportError: If the text is not a version 1 plan document
        """
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise PlanImportError(f"Failed to parse JSON file: {str(e)}")

        if not isinstance(document, dict) or document.get('version') != PLAN_EXPORT_VERSION \
                or not isinstance(document.get('tactics'), list):
            raise PlanImportError("Invalid plan file format.")

        tactics = [self._normalize_record(t) for t in document['tactics'] if isinstance(t, dict)]
        logger.info(f"Imported {len(tactics)} tactics from plan file")
        return tactics

    def load_sample_plan(self) -> List[Dict[str, Any]]:
        """Tactic rows of the bundled example plan."""
        with open(self.sample_plan_path, 'r', encoding='utf-8') as f:
            return self.import_plan(f.read())

    def _normalize_record(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in ids, string fields and nulls so every record has all keys."""
        record = {
            'id': raw['id'] if isinstance(raw.get('id'), str) and raw.get('id') else str(uuid.uuid4()),
            'tacticName': raw.get('tacticName') if isinstance(raw.get('tacticName'), str) else "",
            'geoName': raw.get('geoName') if isinstance(raw.get('geoName'), str) else "",
            'audienceName': raw.get('audienceName') if isinstance(raw.get('audienceName'), str) else "",
            'audienceSize': self._coerce_number(raw.get('audienceSize')),
            'channel': raw.get('channel') if isinstance(raw.get('channel'), str) else self.default_channel,
        }
        for key in METRIC_RECORD_FIELDS:
            record[key] = self._coerce_number(raw.get(key))
        return record

    @staticmethod
    def _coerce_number(value: Any) -> Any:
        """Numbers typed into form fields become numbers; blanks become None."""
        if value is None:
            return None
        if not isinstance(value, str):
            return value
        text = value.strip().replace(',', '')
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            # Left as text so validation can report it
            return value
        return int(number) if number.is_integer() else number

    # ------------------------------------------------------------------
    # Tabular views
    # ------------------------------------------------------------------

    @staticmethod
    def results_to_dataframe(resolved: List[ResolvedTactic]) -> pd.DataFrame:
        """One row per resolved tactic, for display and CSV download."""
        rows = []
        for r in resolved:
            rows.append({
                'Tactic': r.tactic_name,
                'Geo': r.geo_name,
                'Audience': r.audience_name,
                'Audience Size': r.audience_size,
                'Channel': r.channel,
                'Cost': r.input_cost,
                'CPM': r.input_cpm,
                'Gross Impressions': r.gross_impressions,
                'GRPs': r.grps,
                'Reach %': r.reach_percent,
                'Reach % Estimated': r.reach_percent_estimated,
                'Reach #': r.reach_number,
                'Frequency': r.frequency,
                'Effective 3+ %': r.effective_3plus.effective_3plus_percent if r.effective_3plus else None,
                'Derivation': r.derivation_path,
                'Warnings': " | ".join(r.warnings),
                'Errors': " | ".join(r.errors),
            })
        return pd.DataFrame(rows)

    @staticmethod
    def steps_to_dataframe(summary: PlanSummaryResult) -> pd.DataFrame:
        """Sequential-remainder trace as a table, one row per step."""
        return pd.DataFrame([
            {
                'Step': i + 1,
                'Tactic': step.tactic_name,
                'Reach %': step.reach_percent,
                'Unreached Remainder %': step.remainder,
                'Incremental Reach %': step.incremental,
                'Running Total %': step.running_total,
            }
            for i, step in enumerate(summary.combined_reach_steps)
        ])
