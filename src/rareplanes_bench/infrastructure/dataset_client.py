"""
Dataset file server client

Reads paginated image records (YOLO annotations already summarized into
objectCount and unique classes) and raw image bytes over HTTP.
"""

import logging

import requests

from rareplanes_bench.harness_config import DatasetConfig
from rareplanes_bench.infrastructure.model_clients.errors import TransportFailure

logger = logging.getLogger(__name__)


class DatasetClient:
    """HTTP client for the dataset file server"""

    def __init__(self, config: DatasetConfig | None = None, session: requests.Session | None = None):
        self.config = config or DatasetConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or requests.Session()

    def _get(self, url: str, params: dict | None = None) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.config.timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportFailure(f"GET {url} failed: {e}") from e
        return response

    def image_url(self, subset: str, filename: str) -> str:
        """Public URL of an image file"""
        return f"{self.base_url}/dataset/{subset}/images/{filename}"

    def list_images(self, subset: str, page: int = 1, page_size: int | None = None) -> dict:
        """
        Fetch one page of image records

        Returns:
            {"images": [...], "total": int, "page": int, "pageSize": int, "totalPages": int}
        """
        params = {
            "subset": subset,
            "page": page,
            "pageSize": page_size or self.config.page_size,
        }
        data = self._get(f"{self.base_url}/api/images", params=params).json()
        for record in data.get("images", []):
            record.setdefault("subset", subset)
        return data

    def load_all_images(self, subset: str) -> list[dict]:
        """Walk every page of a subset"""
        records: list[dict] = []
        page = 1
        while True:
            data = self.list_images(subset, page=page)
            records.extend(data.get("images", []))
            total_pages = data.get("totalPages") or 0
            if page >= total_pages:
                break
            page += 1
        logger.info("Loaded %d image records from subset '%s'", len(records), subset)
        return records

    def get_image(self, subset: str, image_id: str) -> dict:
        record = self._get(f"{self.base_url}/api/images/{subset}/{image_id}").json()
        record.setdefault("subset", subset)
        return record

    def fetch_image_bytes(self, url: str) -> bytes:
        """Download raw image bytes"""
        return self._get(url).content
