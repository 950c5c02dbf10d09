"""
Manages loading and saving of the INI configuration file, one section per board.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ipsdl.exceptions import ConfigurationError
from ipsdl.models.config import BoardConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def _read(self) -> None:
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'ipsdl init' first."
            )
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

    def board_names(self) -> list[str]:
        """Returns the names of all configured boards."""
        if not self.config_file_path.is_file():
            return []
        self._read()
        return self._parser.sections()

    def load_board(
        self, name: str, cli_options: dict[str, Any] | None = None
    ) -> BoardConfig:
        """
        Loads a board's section, applies CLI overrides, and validates it.

        Raises:
            ConfigurationError: If the file or section is missing, or validation
            fails.
        """
        self._read()
        if not self._parser.has_section(name):
            known = ", ".join(self._parser.sections()) or "none"
            raise ConfigurationError(
                f"Board '{name}' is not configured (known boards: {known})."
            )

        settings = self._get_section_as_dict(name)
        if cli_options:
            settings.update({k: v for k, v in cli_options.items() if v is not None})

        try:
            return BoardConfig(
                name=name, cache_dir=self.config_file_path.parent, **settings
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_board(self, name: str, settings: dict[str, Any]) -> BoardConfig:
        """
        Validates and saves a board section, keeping the other boards untouched.
        """
        try:
            board = BoardConfig(
                name=name, cache_dir=self.config_file_path.parent, **settings
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        if self.config_file_path.is_file():
            config.read(self.config_file_path, encoding="utf-8")

        config[name] = {
            key: str(getattr(board, key).value)
            if key == "version"
            else str(getattr(board, key))
            for key in sorted(BoardConfig.get_ini_keys())
        }

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

        log.debug(f"Saved board '{name}' to {self.config_file_path}.")
        return board

    def _get_section_as_dict(self, name: str) -> dict[str, Any]:
        """Reads a board's section into a dictionary."""
        section = self._parser[name]
        try:
            return {
                "url": section.get("url", ""),
                "version": section.get("version", "ips4"),
                "username": section.get("username", ""),
                "password": section.get("password", ""),
                "min_delay": section.getint("min_delay", 500),
                "max_delay": section.getint("max_delay", 2000),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in section '{name}': {e}") from e
