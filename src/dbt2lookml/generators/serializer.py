"""LookML rendering with lkml."""

from __future__ import annotations

from typing import Any

import lkml

from dbt2lookml.constants import EXPLORE_COMMENT
from dbt2lookml.generators.view import GeneratedModel
from dbt2lookml.schemas.lookml import LookMLView


class LookMLSerializer:
    """Renders generated records as LookML text."""

    def render_views(
        self, views: list[LookMLView], includes: list[str] | None = None
    ) -> str:
        """Render views (and optional includes) as one LookML document."""
        document: dict[str, Any] = {}
        if includes:
            document["includes"] = includes
        document["views"] = [view.to_lookml_dict() for view in views]
        return lkml.dump(document).strip() + "\n"

    def render_file(self, generated: GeneratedModel) -> str:
        """Render the consolidated view file of one model.

        The file holds the base view, the nested views, a blank line, a
        comment and the reference explore.
        """
        views = self.render_views(generated.views).rstrip()
        explore = lkml.dump({"explores": [generated.explore.to_lookml_dict()]}).strip()
        return f"{views}\n\n{EXPLORE_COMMENT}\n{explore}\n"

    def validate(self, content: str) -> tuple[bool, str]:
        """Validate LookML syntax by parsing it back.

        Args:
            content: LookML content to validate.

        Returns:
            Tuple of (is_valid, error_message).
        """
        try:
            parsed = lkml.load(content)
        except Exception as e:
            return False, f"Invalid LookML syntax: {e}"
        if parsed is None:
            return False, "Failed to parse LookML content"
        return True, ""
