"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use TEMPLO2TWIG_ prefix (e.g., TEMPLO2TWIG_STRICT_MODE=true).

Settings can also be loaded from a .env file in the project root.
"""

import re
from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use TEMPLO2TWIG_ prefix.

    Examples:
        TEMPLO2TWIG_TARGET_EXTENSION=.html.twig
        TEMPLO2TWIG_MACRO_IMPORT_FILE=partials/macros.twig
        TEMPLO2TWIG_STRICT_MODE=true
    """

    model_config = SettingsConfigDict(
        env_prefix="TEMPLO2TWIG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # File naming
    source_extension: str = Field(
        default=".mtt",
        description="Extension of Templo source templates",
    )

    target_extension: str = Field(
        default=".twig",
        description="Extension of generated Twig templates",
    )

    # Pre-processor configuration
    placeholder_prefix: str = Field(
        default="TEMPLATE_",
        description="Prefix of placeholder attributes inserted before markup parsing",
    )

    use_wrapper_tag: str = Field(
        default="templo-use",
        description="Synthetic root element standing in for a ::use:: block until finalization",
    )

    # Macro configuration
    macro_library_tag: str = Field(
        default="macros",
        description="Container tag marking a macro library document",
    )

    macro_tag: str = Field(
        default="macro",
        description="Tag holding a single macro definition inside a library",
    )

    macro_import_file: str = Field(
        default="macros.html",
        description="Template imported by documents that call macros",
    )

    macro_namespace: str = Field(
        default="macros",
        description="Name the imported macro library is bound to",
    )

    # Output configuration
    strip_leftover_delimiters: bool = Field(
        default=True,
        description="Remove '::' delimiters that survive conversion",
    )

    strict_mode: bool = Field(
        default=False,
        description="Strict mode: treat warnings as errors",
    )

    def placeHolder_make(self, family: str, index: int) -> str:
        """
        Generate a placeholder token for a directive family at given index.

        Args:
            family: Placeholder family name (e.g., "COND", "ATTR_CLASS")
            index: Zero-based insertion index in the family's table

        Returns:
            Placeholder string (e.g., "TEMPLATE_COND_0")

        Example:
            >>> settings = AppSettings()
            >>> settings.placeHolder_make("COND", 0)
            'TEMPLATE_COND_0'
        """
        return f"{self.placeholder_prefix}{family}_{index}"

    def placeHolder_parse(self, token: str) -> Optional[Tuple[str, int]]:
        """
        Split a placeholder token into its family and index.

        Matching is case-insensitive because attribute names may have been
        case-folded along the way.

        Args:
            token: Candidate placeholder string

        Returns:
            (FAMILY, index) if token is a placeholder, None otherwise

        Example:
            >>> settings = AppSettings()
            >>> settings.placeHolder_parse('template_attr_class_3')
            ('ATTR_CLASS', 3)
        """
        match = re.fullmatch(
            rf"{re.escape(self.placeholder_prefix)}([A-Z_]+?)_(\d+)",
            token.strip(),
            re.IGNORECASE,
        )
        if not match:
            return None
        return match.group(1).upper(), int(match.group(2))

    def placeHolder_pattern(self, family: str) -> "re.Pattern[str]":
        """Compiled regex finding every placeholder of one family in a string"""
        return re.compile(
            rf"{re.escape(self.placeholder_prefix)}{family}_(\d+)", re.IGNORECASE
        )

    @property
    def useMarker(self) -> str:
        """Placeholder attribute name marking the synthetic ::use:: root"""
        return f"{self.placeholder_prefix}USE"


# Singleton instance - import this in your code
appsettings = AppSettings()
