"""
Session/identity store.

Holds the identity of the user signed in to this process. Built once by the
app factory and shared by every page controller.
"""

import logging
from typing import Optional

from event_manager.database.parse_client import ParseClient, expect_success
from event_manager.errors import AccessDenied, ConfigurationError, RemoteCallError
from event_manager.events_service.mappers import map_identity
from event_manager.auth_service.validation import SignupData
from event_manager.models import User


class SessionStore:
    def __init__(self, client: ParseClient):
        self.client = client
        self.identity: Optional[User] = None
        self.is_loading = False

    def restore(self) -> Optional[User]:
        """
        Load the identity persisted by a previous login, if any.

        Never raises: a missing, unreadable or malformed session leaves the
        store empty.
        """
        self.is_loading = True
        try:
            self.identity = map_identity(self.client.current_user())
        except (ValueError, OSError) as e:
            logging.error(f"[Auth] Error checking current user: {e}")
            self.identity = None
        finally:
            self.is_loading = False

        if self.identity:
            logging.info(f"[Auth] Restored session for {self.identity.username}")
        return self.identity

    def login(self, username: str, password: str) -> User:
        """
        Authenticate against the Parse Server and store the identity.

        Raises:
            ConfigurationError, RemoteCallError: Propagated unchanged.
        """
        self.is_loading = True
        try:
            identity = map_identity(self.client.log_in(username, password))
        except (ConfigurationError, RemoteCallError) as e:
            logging.error(f"[Auth] Login error: {e}")
            raise
        finally:
            self.is_loading = False

        if identity is None:
            raise RemoteCallError("Login failed")

        self.identity = identity
        logging.info(f"[Auth] {identity.username} logged in as {identity.role}")
        return identity

    def signup(self, data: SignupData) -> User:
        """
        Create the user through the `createUser` cloud function, then log in
        with the same credentials.
        """
        self.is_loading = True
        try:
            result = self.client.run("createUser", data.to_params())
            expect_success(result, "Signup failed")
        except (ConfigurationError, RemoteCallError) as e:
            logging.error(f"[Auth] Signup error: {e}")
            raise
        finally:
            self.is_loading = False

        return self.login(data.username, data.password)

    def logout(self) -> bool:
        """
        Sign out. The local identity is cleared even if the server call fails.

        Returns:
            bool: True if the server acknowledged the logout.
        """
        self.is_loading = True
        try:
            self.client.log_out()
            return True
        except (ConfigurationError, RemoteCallError) as e:
            logging.warning(f"[Auth] Logout error, clearing local session anyway: {e}")
            return False
        finally:
            self.identity = None
            self.is_loading = False

    def require_role(self, role: str, message: str) -> User:
        """
        Return the current identity if it has `role`.

        Raises:
            AccessDenied: Not signed in, or signed in with another role.
        """
        if self.identity is None or self.identity.role != role:
            raise AccessDenied(message)
        return self.identity
