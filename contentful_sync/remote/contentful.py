"""
Contentful Management API client.

Only the handful of asset operations the sync engine needs: create, rename,
delete, upload a new file, and list. Every failure surfaces as
RemoteOperationError so callers have one thing to catch.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.exceptions import HTTPError, RequestException

from .. import config
from ..exceptions import RemoteOperationError
from ..models import RecordRef

MANAGEMENT_CONTENT_TYPE = 'application/vnd.contentful.management.v1+json'


class ContentfulClient:
    def __init__(self,
                 space_id: str,
                 access_token: str,
                 environment: str = config.DEFAULT_ENVIRONMENT,
                 locale: str = config.DEFAULT_LOCALE,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.space_id = space_id
        self.environment = environment
        self.locale = locale
        self.session = session or requests.Session()
        self.session.headers.update({'Authorization': f'Bearer {access_token}'})
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return f"{config.CONTENTFUL_API_URL}/spaces/{self.space_id}/environments/{self.environment}"

    @property
    def upload_url(self) -> str:
        return f"{config.CONTENTFUL_UPLOAD_URL}/spaces/{self.space_id}/uploads"

    # --- Catalog operations ---

    def list_records(self) -> List[RecordRef]:
        refs = []
        skip = 0
        while True:
            page = self._request('list', 'GET', f"{self.base_url}/assets",
                                 params={'skip': skip, 'limit': config.LIST_PAGE_SIZE})
            items = page.get('items', [])
            refs.extend(self._to_ref(item) for item in items)
            skip += len(items)
            if not items or skip >= page.get('total', 0):
                break
        logging.info(f"Contentful has {len(refs)} assets")
        return refs

    def create_record(self, display_name: str, description: str, file_name: str) -> RecordRef:
        body = {
            'fields': {
                'title': {self.locale: display_name},
                'description': {self.locale: description or ''},
                'file': {self.locale: {
                    'contentType': config.ASSET_CONTENT_TYPE,
                    'fileName': file_name,
                }},
            }
        }
        asset = self._request('create', 'POST', f"{self.base_url}/assets",
                              json=body, headers=self._json_headers())
        return self._to_ref(asset)

    def update_name(self, token: str, name: str, description: str) -> None:
        asset = self._get_asset('update', token)
        fields = asset.setdefault('fields', {})
        fields['title'] = {self.locale: name}
        fields['description'] = {self.locale: description or ''}
        self._put_asset('update', token, asset)

    def delete_record(self, token: str) -> None:
        asset = self._get_asset('delete', token)
        meta = asset.get('sys', {})
        version = meta.get('version')

        if meta.get('publishedVersion'):
            unpublished = self._request('delete', 'DELETE', f"{self.base_url}/assets/{token}/published",
                                        token=token, headers=self._json_headers(version))
            version = unpublished.get('sys', {}).get('version', version)

        self._request('delete', 'DELETE', f"{self.base_url}/assets/{token}",
                      token=token, headers=self._json_headers(version))

    def upload_asset(self, token: str, file_name: str, data: bytes) -> None:
        """Uploads bytes, links them to the asset and waits for processing."""
        upload = self._request('upload', 'POST', self.upload_url, token=token, data=data,
                               headers={'Content-Type': 'application/octet-stream'})
        upload_id = upload['sys']['id']

        asset = self._get_asset('upload', token)
        asset.setdefault('fields', {})['file'] = {self.locale: {
            'contentType': config.ASSET_CONTENT_TYPE,
            'fileName': file_name,
            'uploadFrom': {'sys': {'type': 'Link', 'linkType': 'Upload', 'id': upload_id}},
        }}
        updated = self._put_asset('upload', token, asset)

        version = updated.get('sys', {}).get('version')
        self._request('upload', 'PUT', f"{self.base_url}/assets/{token}/files/{self.locale}/process",
                      token=token, headers=self._json_headers(version))
        self._wait_processed(token)

    # --- Helpers ---

    def _wait_processed(self, token: str) -> None:
        for _ in range(config.PROCESSING_MAX_CHECKS):
            self._sleep(config.PROCESSING_CHECK_WAIT)
            asset = self._get_asset('upload', token)
            file_info = asset.get('fields', {}).get('file', {}).get(self.locale, {})
            if file_info.get('url'):
                return
        logging.warning(f"Asset {token} still processing after {config.PROCESSING_MAX_CHECKS} checks")

    def _get_asset(self, action: str, token: str) -> Dict[str, Any]:
        return self._request(action, 'GET', f"{self.base_url}/assets/{token}", token=token)

    def _put_asset(self, action: str, token: str, asset: Dict[str, Any]) -> Dict[str, Any]:
        version = asset.get('sys', {}).get('version')
        return self._request(action, 'PUT', f"{self.base_url}/assets/{token}", token=token,
                             json={'fields': asset.get('fields', {})},
                             headers=self._json_headers(version))

    def _json_headers(self, version: Optional[int] = None) -> Dict[str, str]:
        headers = {'Content-Type': MANAGEMENT_CONTENT_TYPE}
        if version is not None:
            headers['X-Contentful-Version'] = str(version)
        return headers

    def _to_ref(self, asset: Dict[str, Any]) -> RecordRef:
        meta = asset.get('sys', {})
        title = asset.get('fields', {}).get('title', {}).get(self.locale, '')
        return RecordRef(identifier=meta.get('id', ''), display_name=title, version=meta.get('version'))

    def _request(self, action: str, method: str, url: str,
                 token: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        kwargs.setdefault('timeout', config.REQUEST_TIMEOUT)
        try:
            resp = self.session.request(method, url, **kwargs)
            resp.raise_for_status()
        except HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemoteOperationError(action, str(e), token=token, status=status) from e
        except RequestException as e:
            raise RemoteOperationError(action, str(e), token=token) from e

        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteOperationError(action, f"Invalid JSON response: {e}", token=token) from e
