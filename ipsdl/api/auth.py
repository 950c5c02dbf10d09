"""
Handles logging in and out of a board, for both IPS 3 and IPS 4 login forms.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional
from urllib.parse import unquote

from ipsdl.exceptions import AuthenticationError
from ipsdl.models.config import BoardVersion

if TYPE_CHECKING:
    from .session import BoardSession

log = logging.getLogger(__name__)


class Authenticator(ABC):
    """
    Manages the login flow for a board session.

    A successful login mutates the session's shared cookie jar, so every
    subsequent authenticated request observes the new session.
    """

    def __init__(
        self,
        session: "BoardSession",
        username: str,
        password: str,
        debug_dir: Optional[Path] = None,
    ):
        """
        Initializes the authenticator.

        Args:
            session: The board session whose cookie jar receives the login.
            username: The board user name.
            password: The board password.
            debug_dir: Where to dump unexpected login responses.
        """
        self._session = session
        self._username = username
        self._password = password
        self._debug_dir = debug_dir

    def _require_credentials(self) -> None:
        if not self._username or not self._password:
            raise AuthenticationError(
                "Need valid credentials for this action. Configure the board with"
                " a username and password."
            )

    def _dump(self, name: str, body: str) -> Optional[str]:
        if not self._debug_dir:
            return None
        path = self._debug_dir / name
        try:
            self._debug_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
        except OSError as e:
            log.warning(f"[yellow]Could not write {path}:[/] {e}")
            return None
        return str(path)

    @abstractmethod
    async def login(self) -> bool:
        """
        Logs the user in.

        Returns:
            True if a login was performed, False if the session was already valid.

        Raises:
            AuthenticationError: On bad credentials or missing login artifacts.
        """

    @abstractmethod
    async def logout(self) -> bool:
        """
        Closes the session. This must be called explicitly, otherwise the
        session stays open even across restarts.

        Returns:
            True if a logout was performed, False if nobody was logged in.
        """


class IPS4Authenticator(Authenticator):
    """Login through the `/login/` form of IPS 4 boards."""

    LOGIN_PATH = "/login/"

    async def login(self) -> bool:
        self._require_credentials()
        doc = await self._session.fetch_page_authenticated("/")

        avatar = doc.select_one("#cUserLink a.ipsUserPhoto > img")
        if avatar is not None and avatar.get("alt") == self._username:
            log.info("User already logged, skipping login.")
            return False

        csrf_input = doc.select_one('form.ipsPad input[name="csrfKey"]')
        if csrf_input is None or not csrf_input.get("value"):
            raise AuthenticationError("Cannot find CSRF key in index page.")

        response = await self._session.post_form(
            self.LOGIN_PATH,
            {
                "login__standard_submitted": "1",
                "csrfKey": csrf_input["value"],
                "auth": self._username,
                "password": self._password,
                "remember_me": "0",
                "remember_me_checkbox": "1",
                "signin_anonymous": "0",
                "signin_anonymous_checkbox": "1",
            },
        )

        if re.search(r"password you entered is incorrect", response.body, re.I):
            raise AuthenticationError("Wrong credentials when logging in.")
        if response.status not in (301, 302):
            dump_path = self._dump("result-login.html", response.body)
            raise AuthenticationError(
                f"Unexpected response when logging in ({response.status})."
                + (f" See {dump_path}." if dump_path else "")
            )

        self._session.save_cookies()
        log.info("Login successful.")
        return True

    async def logout(self) -> bool:
        doc = await self._session.fetch_page_authenticated("/")

        if doc.select_one("#cUserLink a.ipsUserPhoto > img") is None:
            log.warning("Looks like you are not logged in anyway, aborting.")
            return False

        link = doc.select_one('[data-menuitem="signout"] > a')
        if link is None or not link.get("href"):
            raise AuthenticationError("Could not find logout link.")

        response = await self._session.get_raw(link["href"])
        if response.status not in (301, 302):
            dump_path = self._dump("result-logout.html", response.body)
            raise AuthenticationError(
                f"Unexpected response when logging out ({response.status})."
                + (f" See {dump_path}." if dump_path else "")
            )

        self._session.save_cookies()
        log.info("Logout successful.")
        return True


class IPS3Authenticator(Authenticator):
    """Login through the auth-key protected form of IPS 3 boards."""

    LOGIN_PATH = "/index.php?app=core&module=global&section=login&do=process"

    _AUTH_KEY_REGEX = re.compile(
        r"""<input\s+type=['"]hidden['"]\s+name=['"]auth_key['"]\s+value=['"]([^"']+)""",
        re.I,
    )
    _REFERER_REGEX = re.compile(
        r"""<input\s+type=['"]hidden['"]\s+name=['"]referer['"]\s+value=['"]([^"']+)""",
        re.I,
    )
    _LOGOUT_LINK_REGEX = re.compile(r'<a\shref="([^"]+do=logout[^"]+)')

    def _is_logged_in(self, body: str) -> bool:
        return bool(re.search(">" + re.escape(self._username) + " &nbsp;", body, re.I))

    async def login(self) -> bool:
        self._require_credentials()
        body = await self._session.fetch_text("/", authenticated=True)

        if self._is_logged_in(body):
            log.info("User already logged, skipping login.")
            return False

        key = self._AUTH_KEY_REGEX.search(body)
        referer = self._REFERER_REGEX.search(body)
        if not key or not referer:
            raise AuthenticationError("Cannot find auth key in index page.")

        response = await self._session.post_form(
            self.LOGIN_PATH,
            {
                "auth_key": key.group(1),
                "anonymous": "1",
                "referer": referer.group(1),
                "ips_username": self._username,
                "ips_password": self._password,
            },
        )

        if re.search(r"username or password incorrect", response.body, re.I):
            raise AuthenticationError("Wrong credentials when logging in.")
        if response.status != 302:
            raise AuthenticationError(
                f"Unexpected response when logging in ({response.status})."
            )

        self._session.save_cookies()
        log.info("Login successful.")
        return True

    async def logout(self) -> bool:
        body = await self._session.fetch_text("/index.php", authenticated=True)

        match = self._LOGOUT_LINK_REGEX.search(body)
        if not match:
            log.warning("Looks like you are not logged in anyway, aborting.")
            return False

        uri = unquote(match.group(1)).replace("&amp;", "&")
        body = await self._session.fetch_text(uri, authenticated=True)
        if self._is_logged_in(body):
            raise AuthenticationError("Logout failed.")

        self._session.save_cookies()
        log.info("Logout successful.")
        return True


def get_authenticator(
    version: BoardVersion,
    session: "BoardSession",
    username: str,
    password: str,
    debug_dir: Optional[Path] = None,
) -> Authenticator:
    """Returns the authenticator matching the board version."""
    authenticators: dict[BoardVersion, type[Authenticator]] = {
        BoardVersion.IPS3: IPS3Authenticator,
        BoardVersion.IPS4: IPS4Authenticator,
    }
    return authenticators[BoardVersion(version)](session, username, password, debug_dir)
