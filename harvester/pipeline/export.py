"""
Export Pipeline - CSV/JSON Output of Enriched Launch Products

Writes one row per processed product, including products where nothing was
found, so downstream sheets keep the full launch list.

Key Features:
- Timestamped file names (`launch_contacts_<YYYYmmdd_HHMMSS>`)
- Flat CSV (signals joined with ';') and pretty JSON
- `find_latest_csv()` locates the newest export for upload
"""

import csv
import json
from datetime import datetime as dt
from pathlib import Path
from typing import List, Optional, Union

from ..schemas import EnrichedProduct


EXPORT_PREFIX = "launch_contacts_"

CSV_FIELDS = list(EnrichedProduct.model_fields.keys())


def find_latest_csv(directory: Union[str, Path], prefix: str = EXPORT_PREFIX) -> Optional[Path]:
    """Return the most recently modified `<prefix>*.csv` in directory, if any."""
    d = Path(directory)
    if not d.is_dir():
        return None
    files = sorted(d.glob(f"{prefix}*.csv"), key=lambda p: p.stat().st_mtime, reverse=True)
    return files[0] if files else None


class ProductExporter:
    """
    Exports enriched products to CSV/JSON formats.
    """

    def __init__(self, output_dir: Union[str, Path] = "output"):
        """
        Initialize Product Exporter.

        Args:
            output_dir: Directory for output files (created if doesn't exist)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _default_name(self, ext: str) -> str:
        timestamp = dt.now().strftime("%Y%m%d_%H%M%S")
        return f"{EXPORT_PREFIX}{timestamp}.{ext}"

    def to_csv(self, products: List[EnrichedProduct], filename: Optional[str] = None) -> Path:
        """
        Export products to CSV format.

        Args:
            products: List of EnrichedProduct rows
            filename: Output filename (auto-generated if None)

        Returns:
            Path to created CSV file
        """
        csv_path = self.output_dir / (filename or self._default_name("csv"))
        with open(csv_path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for product in products:
                row = product.model_dump()
                row['signals'] = ';'.join(row.get('signals') or [])
                row['error_kind'] = row.get('error_kind') or ''
                writer.writerow(row)

        print(f"💾 CSV exported: {csv_path} ({len(products)} products)")
        return csv_path

    def to_json(self, products: List[EnrichedProduct], filename: Optional[str] = None, pretty: bool = True) -> Path:
        """
        Export products to JSON format (a list of objects).
        """
        json_path = self.output_dir / (filename or self._default_name("json"))
        export_data = [p.model_dump() for p in products]
        with open(json_path, 'w', encoding='utf-8') as jsonfile:
            if pretty:
                json.dump(export_data, jsonfile, indent=2, ensure_ascii=False)
            else:
                json.dump(export_data, jsonfile, ensure_ascii=False)

        print(f"💾 JSON exported: {json_path} ({len(export_data)} products)")
        return json_path

    def get_export_stats(self, products: List[EnrichedProduct]) -> dict:
        """Counts of rows and of each found field, for the run summary."""
        stats = {
            "total_products": len(products),
            "with_email": sum(1 for p in products if p.email),
            "with_social_handle": sum(1 for p in products if p.social_handle),
            "with_linkedin_url": sum(1 for p in products if p.linkedin_url),
            "with_contact_page_url": sum(1 for p in products if p.contact_page_url),
            "errors": sum(1 for p in products if p.error_kind),
            "flagged": sum(1 for p in products if p.signals),
        }
        return stats
