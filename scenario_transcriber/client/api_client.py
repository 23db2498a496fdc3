"""
Client module for communicating with the scenario transcription API server.

This module provides a simple interface to:
- Upload scenario archives for processing
- Poll job status
- List and download produced reports
"""

import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, RequestException

from ..config import ConfigManager


class APIClient:
    """Client for communicating with the scenario transcription API server."""

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the API server (defaults to API_BASE_URL)
            timeout: Default request timeout in seconds
        """
        self.base_url = str(ConfigManager.get("API_BASE_URL", base_url)).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def health_check(self) -> Dict[str, Any]:
        """
        Check if the API server is healthy.

        Raises:
            ConnectionError: If unable to connect to the server
        """
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise ConnectionError(f"Unable to connect to API server: {e}")

    def upload_archive(self, file_path: str, wait: bool = False, timeout: int = 300) -> Dict[str, Any]:
        """
        Upload a scenario archive.

        Args:
            file_path: Path to the .zip archive
            wait: Use the blocking endpoint and return the report path directly
            timeout: Request timeout in seconds

        Returns:
            {"job_id": ...} for queued uploads, {"file_path", "message"} when waiting

        Raises:
            FileNotFoundError: If the file doesn't exist
            RequestException: If the upload fails
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Archive not found: {file_path}")

        endpoint = "/scenario/upload/sync" if wait else "/scenario/upload"
        try:
            with open(file_path, "rb") as archive:
                files = {"file": (file_path.name, archive, "application/zip")}
                response = self.session.post(f"{self.base_url}{endpoint}", files=files, timeout=timeout)
                response.raise_for_status()
                return response.json()
        except RequestException as e:
            raise RequestException(f"Upload failed: {e}")

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the status of a processing job.

        Returns:
            Status dictionary, or None if the server does not know the job

        Raises:
            RequestException: If the request fails
        """
        try:
            response = self.session.get(f"{self.base_url}/scenario/status/{job_id}", timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to get job status: {e}")

    def list_history(self, limit: int = 100) -> Dict[str, Any]:
        """
        List produced reports, newest first.

        Raises:
            RequestException: If the request fails
        """
        try:
            response = self.session.get(
                f"{self.base_url}/scenario/history", params={"limit": limit}, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to list history: {e}")

    def download_artifact(self, public_path: str, target: str) -> Path:
        """
        Download a report by its public path (as returned in file_path).

        Returns:
            Path of the written file
        """
        target = Path(target)
        try:
            response = self.session.get(f"{self.base_url}{public_path}", timeout=self.timeout)
            response.raise_for_status()
        except RequestException as e:
            raise RequestException(f"Failed to download report: {e}")

        target.write_bytes(response.content)
        return target

    def wait_for_completion(self, job_id: str, poll_interval: float = 5, timeout: int = 3600) -> Dict[str, Any]:
        """
        Poll a job until it finishes.

        Returns:
            Final status dictionary (state "finished")

        Raises:
            TimeoutError: If the job doesn't complete within the timeout
            RequestException: If the job failed, is unknown, or any API call fails
        """
        start_time = time.time()

        while time.time() - start_time < timeout:
            status_info = self.get_job_status(job_id)
            if status_info is None:
                raise RequestException(f"Job {job_id} not found")

            state = status_info.get("state")
            if state == "finished":
                return status_info
            elif state == "failed":
                error = status_info.get("error") or "Unknown error"
                raise RequestException(f"Job failed: {error}")

            time.sleep(poll_interval)

        raise TimeoutError(f"Job {job_id} did not complete within {timeout} seconds")


# Convenience function for quick uploads
def upload_and_process(
    file_path: str,
    api_url: Optional[str] = None,
    wait_for_result: bool = True,
    poll_interval: float = 5,
    timeout: int = 3600,
) -> Dict[str, Any]:
    """
    Upload an archive and optionally wait for processing to complete.

    Returns:
        Either the upload response or the final job status
    """
    client = APIClient(api_url)
    upload_result = client.upload_archive(file_path)
    job_id = upload_result["job_id"]

    if wait_for_result:
        return client.wait_for_completion(job_id, poll_interval, timeout)
    return upload_result
