"""
Parse Server REST client.
Provides the single ParseClient used by every service: object queries,
object saves, file uploads, cloud functions and user sessions.

Usage:
    client = ParseClient(load_config())
    events = client.find("Event", include=["organizer"], order="-createdAt")
"""

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote

import requests

from event_manager.config import ParseConfig
from event_manager.errors import RemoteCallError

CONNECTION_ERROR_MESSAGE = (
    "Cannot connect to Parse Server. Please check your server URL and credentials."
)

USER_CLASS = "_User"


def pointer(class_name: str, object_id: str) -> Dict[str, str]:
    """
    Build a Parse pointer to another object.

    Args:
        class_name (str): Target class, e.g. "Event" or "_User".
        object_id (str): Target objectId.

    Returns:
        dict: {"__type": "Pointer", "className": ..., "objectId": ...}
    """
    return {"__type": "Pointer", "className": class_name, "objectId": object_id}


def expect_success(result: Any, default_message: str) -> Dict[str, Any]:
    """
    Check a cloud function's tagged result ({success, message, ...}).

    Returns:
        dict: The result, when success is true.

    Raises:
        RemoteCallError: With the server's message (or `default_message`).
    """
    if not isinstance(result, Mapping) or not result.get("success"):
        message = result.get("message") if isinstance(result, Mapping) else None
        raise RemoteCallError(message or default_message)
    return dict(result)


class ParseClient:
    """
    Thin wrapper around one Parse Server connection.

    Every remote operation checks the configuration first, so a missing
    application id, key or server URL raises ConfigurationError without
    issuing any HTTP request.
    """

    def __init__(self, config: ParseConfig, http: Optional[requests.Session] = None):
        self.config = config
        self.http = http or requests.Session()
        self.session_token: Optional[str] = None

    # --- LOW LEVEL ---
    def _headers(self, content_type: Optional[str] = "application/json") -> Dict[str, str]:
        headers = {
            "X-Parse-Application-Id": self.config.application_id or "",
            "X-Parse-JavaScript-Key": self.config.javascript_key or "",
        }
        if content_type:
            headers["Content-Type"] = content_type
        if self.session_token:
            headers["X-Parse-Session-Token"] = self.session_token
        return headers

    def _url(self, path: str) -> str:
        return f"{self.config.server_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Any = None,
        data: Optional[bytes] = None,
        content_type: Optional[str] = "application/json",
        extra_headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send one request to the Parse Server and decode its JSON body.

        Raises:
            ConfigurationError: Connection parameters missing (no request sent).
            RemoteCallError: Transport failure or an error reported by Parse.
        """
        self.config.require()

        url = self._url(path)
        headers = self._headers(content_type)
        if extra_headers:
            headers.update(extra_headers)

        logging.info(f"[Parse] {method.upper()} {url}")

        try:
            response = self.http.request(
                method.upper(),
                url,
                params=params,
                json=payload,
                data=data,
                headers=headers,
                timeout=timeout or self.config.request_timeout,
            )
        except requests.RequestException as e:
            logging.error(f"[Parse] {method.upper()} {url} failed: {e}")
            raise RemoteCallError(CONNECTION_ERROR_MESSAGE) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = body.get("error") if isinstance(body, dict) else None
            code = body.get("code") if isinstance(body, dict) else None
            logging.warning(f"[Parse] {response.status_code} from {url}: {message}")
            raise RemoteCallError(
                message or f"Parse Server returned HTTP {response.status_code}",
                code=code,
                status=response.status_code,
            )

        return body

    # --- QUERIES ---
    def get(self, class_name: str, object_id: str, include: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Fetch one object by id, optionally with related objects included.

        Raises:
            RemoteCallError: `not_found` is true when the object does not exist
            (or is hidden from the current session).
        """
        params = {"include": ",".join(include)} if include else None
        return self._request("GET", f"classes/{class_name}/{quote(object_id, safe='')}", params=params)

    def find(
        self,
        class_name: str,
        where: Optional[Dict[str, Any]] = None,
        include: Optional[Iterable[str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a filtered query over a class.

        Args:
            class_name (str): e.g. "Event".
            where (dict): Parse constraint object, JSON-encoded on the wire.
            include (list): Relations to resolve in the same request.
            order (str): Sort key, "-" prefix for descending.
            limit (int): Maximum number of results.

        Returns:
            list: Raw result dictionaries (possibly empty).
        """
        params: Dict[str, Any] = {}
        if where:
            params["where"] = json.dumps(where)
        if include:
            params["include"] = ",".join(include)
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit

        body = self._request("GET", f"classes/{class_name}", params=params or None)
        return list(body.get("results", []))

    def ping(self) -> None:
        """Minimal query proving the server is reachable with our credentials."""
        self.find(USER_CLASS, limit=1)

    # --- WRITES ---
    def save(self, class_name: str, data: Dict[str, Any], object_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create (no object_id) or update an object.

        Returns:
            dict: `data` merged with the server response (objectId, timestamps).
        """
        if object_id:
            body = self._request("PUT", f"classes/{class_name}/{quote(object_id, safe='')}", payload=data)
            return {**data, **body, "objectId": object_id}
        body = self._request("POST", f"classes/{class_name}", payload=data)
        return {**data, **body}

    def upload_file(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        timeout: Optional[float] = None,
    ) -> Dict[str, str]:
        """
        Upload a binary file and return its persisted name and URL.
        """
        body = self._request(
            "POST",
            f"files/{quote(filename, safe='')}",
            data=content,
            content_type=content_type,
            timeout=timeout,
        )
        return {"name": body.get("name", filename), "url": body.get("url", "")}

    def run(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Invoke a cloud function by name.

        Returns:
            The function's `result` value, usually a {success, message, ...} dict.
        """
        body = self._request("POST", f"functions/{function_name}", payload=params or {})
        return body.get("result")

    # --- USER SESSION ---
    def log_in(self, username: str, password: str) -> Dict[str, Any]:
        """
        Authenticate and persist the resulting user (with its session token).
        """
        user = self._request(
            "POST",
            "login",
            payload={"username": username, "password": password},
            extra_headers={"X-Parse-Revocable-Session": "1"},
        )
        self.session_token = user.get("sessionToken")
        self._persist_user(user)
        return user

    def log_out(self) -> None:
        """
        Revoke the server session. The local token and stored user are cleared
        whether or not the server call succeeds.
        """
        try:
            if self.session_token:
                self._request("POST", "logout", payload={})
        finally:
            self.session_token = None
            self._forget_user()

    def current_user(self) -> Optional[Dict[str, Any]]:
        """
        Return the user persisted by the last log_in, or None.

        Raises:
            ValueError: The stored session is not valid JSON object data.
        """
        path = self.config.session_file
        if not path or not os.path.exists(path):
            return None

        with open(path, "r", encoding="utf-8") as fh:
            user = json.load(fh)

        if not isinstance(user, dict) or not user.get("objectId"):
            raise ValueError(f"Stored session in {path} is malformed")

        self.session_token = user.get("sessionToken")
        return user

    def _persist_user(self, user: Dict[str, Any]) -> None:
        path = self.config.session_file
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(user, fh)
        except OSError as e:
            logging.warning(f"[Parse] Could not persist session to {path}: {e}")

    def _forget_user(self) -> None:
        path = self.config.session_file
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logging.warning(f"[Parse] Could not remove stored session {path}: {e}")
