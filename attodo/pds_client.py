#!/usr/bin/env python3
"""
PDS Client Module

Stores task records in the user's AT Protocol Personal Data Server (PDS)
through the com.atproto.repo XRPC endpoints.
"""

import os
import logging
import requests
from typing import Dict, Optional, Any

from attodo.tasks import TASK_COLLECTION, extract_rkey, parse_task_record

logger = logging.getLogger("attodo.pds_client")

REQUEST_TIMEOUT = 30


def get_user_friendly_error(error: Optional[str], default_msg: str) -> str:
    """
    Convert PDS/network errors into user-facing messages

    Args:
        error: Raw error text (may be None)
        default_msg: Message to use when nothing more specific applies

    Returns:
        Message suitable for showing to the user
    """
    if not error:
        return default_msg

    if "502" in error or "Bad Gateway" in error:
        return ("Your PDS server is currently unavailable (502). "
                "Please try again in a moment or contact your PDS administrator.")
    if "503" in error or "Service Unavailable" in error:
        return "Your PDS server is temporarily unavailable (503). Please try again in a moment."
    if "504" in error or "Gateway Timeout" in error:
        return "Your PDS server timed out (504). Please try again in a moment."
    if "500" in error:
        return "Your PDS server encountered an error (500). Please contact your PDS administrator."
    if "EOF" in error or "connection" in error.lower():
        return ("Connection to your PDS server was interrupted. "
                "Please check your network connection and try again.")
    if "timeout" in error.lower() or "timed out" in error.lower():
        return "Request to your PDS server timed out. Please try again."

    return default_msg


class PDSClient:
    """Client for task records in a user's PDS repository"""

    def __init__(self, url: str, did: str, access_jwt: str, refresh_jwt: Optional[str] = None):
        """
        Initialize PDS client

        Args:
            url: PDS base URL (e.g., https://bsky.social)
            did: Repository owner DID
            access_jwt: Session access token
            refresh_jwt: Session refresh token, used once when the access token is rejected
        """
        self.url = url.rstrip('/')
        self.did = did
        self.access_jwt = access_jwt
        self.refresh_jwt = refresh_jwt
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        })
        self._set_token(access_jwt)

    def _set_token(self, token: str):
        self.session.headers['Authorization'] = f"Bearer {token}"

    @staticmethod
    def _needs_refresh(response: requests.Response) -> bool:
        if response.status_code == 401:
            return True
        body = response.text or ""
        return "invalid_dpop_proof" in body or "ExpiredToken" in body

    def refresh_session(self) -> bool:
        """
        Exchange the refresh token for a new access token

        Returns:
            True if the session was refreshed
        """
        if not self.refresh_jwt:
            return False

        try:
            response = requests.post(
                f"{self.url}/xrpc/com.atproto.server.refreshSession",
                headers={'Authorization': f"Bearer {self.refresh_jwt}"},
                timeout=REQUEST_TIMEOUT
            )
        except requests.RequestException as e:
            logger.error(f"Session refresh failed: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Session refresh failed: HTTP {response.status_code}: {response.text}")
            return False

        data = response.json()
        self.access_jwt = data.get('accessJwt', self.access_jwt)
        self.refresh_jwt = data.get('refreshJwt', self.refresh_jwt)
        self._set_token(self.access_jwt)
        logger.info("Refreshed PDS session")
        return True

    def _xrpc(self, method: str, nsid: str, **kwargs) -> requests.Response:
        """Call an XRPC endpoint, refreshing the session once on an auth failure"""
        api_url = f"{self.url}/xrpc/{nsid}"
        response = self.session.request(method, api_url, timeout=REQUEST_TIMEOUT, **kwargs)

        if self._needs_refresh(response) and self.refresh_session():
            logger.info(f"Retrying {nsid} with refreshed session")
            response = self.session.request(method, api_url, timeout=REQUEST_TIMEOUT, **kwargs)

        return response

    def create_task(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a task record

        Args:
            record: Task record (see attodo.tasks.build_task_record)

        Returns:
            Dictionary with:
                - success: bool
                - uri: str (if successful)
                - rkey: str (if successful)
                - error: str (if failed)
        """
        try:
            logger.info(f"Creating task: {record.get('title', '')}")
            response = self._xrpc('POST', 'com.atproto.repo.createRecord', json={
                "repo": self.did,
                "collection": TASK_COLLECTION,
                "record": record
            })

            if response.status_code in [200, 201]:
                uri = response.json().get('uri', '')
                rkey = extract_rkey(uri)
                logger.info(f"Successfully created task: {rkey}")
                return {"success": True, "uri": uri, "rkey": rkey}
            else:
                error_msg = f"HTTP {response.status_code}: {response.text}"
                logger.error(f"Failed to create task: {error_msg}")
                return {"success": False, "error": error_msg}

        except requests.RequestException as e:
            error_msg = f"Connection error: {str(e)}"
            logger.error(f"Request error: {error_msg}")
            return {"success": False, "error": error_msg}

    def get_task(self, rkey: str) -> Dict[str, Any]:
        """
        Fetch a task record

        Returns:
            Dictionary with success, and task/record (if successful) or error
        """
        try:
            logger.debug(f"Fetching task: {rkey}")
            response = self._xrpc('GET', 'com.atproto.repo.getRecord', params={
                "repo": self.did,
                "collection": TASK_COLLECTION,
                "rkey": rkey
            })

            if response.status_code == 200:
                record = response.json().get('value', {})
                return {"success": True, "record": record, "task": parse_task_record(record)}
            else:
                error_msg = f"HTTP {response.status_code}: {response.text}"
                logger.error(f"Failed to get task: {error_msg}")
                return {"success": False, "error": error_msg}

        except requests.RequestException as e:
            error_msg = f"Connection error: {str(e)}"
            logger.error(f"Request error: {error_msg}")
            return {"success": False, "error": error_msg}

    def put_task(self, rkey: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a task record"""
        try:
            response = self._xrpc('POST', 'com.atproto.repo.putRecord', json={
                "repo": self.did,
                "collection": TASK_COLLECTION,
                "rkey": rkey,
                "record": record
            })

            if response.status_code in [200, 201]:
                logger.info(f"Task edited: {rkey}")
                return {"success": True}
            else:
                error_msg = f"HTTP {response.status_code}: {response.text}"
                logger.error(f"Failed to edit task: {error_msg}")
                return {"success": False, "error": error_msg}

        except requests.RequestException as e:
            error_msg = f"Connection error: {str(e)}"
            logger.error(f"Request error: {error_msg}")
            return {"success": False, "error": error_msg}


def create_client_from_env() -> PDSClient:
    """
    Create a PDS client from environment variables

    Returns:
        PDSClient instance

    Raises:
        ValueError: If required environment variables are not set
    """
    url = os.environ.get('ATTODO_PDS_URL')
    did = os.environ.get('ATTODO_DID')
    access_jwt = os.environ.get('ATTODO_ACCESS_JWT')

    if not all([url, did, access_jwt]):
        raise ValueError(
            "Missing required PDS configuration. "
            "Please set ATTODO_PDS_URL, ATTODO_DID, and ATTODO_ACCESS_JWT"
        )

    return PDSClient(url, did, access_jwt, os.environ.get('ATTODO_REFRESH_JWT'))
