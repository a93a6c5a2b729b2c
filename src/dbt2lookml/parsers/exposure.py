"""Models referenced by dbt exposures."""

from __future__ import annotations

from dbt2lookml.schemas.dbt import DbtExposure


class ExposureParser:
    """Reads model references from a manifest's exposures."""

    def __init__(self, exposures: dict[str, DbtExposure]) -> None:
        self.exposures = exposures

    def referenced_models(self, exposures_tag: str | None = None) -> list[str]:
        """Names of models referenced by exposures.

        Args:
            exposures_tag: Only consider exposures carrying this tag.

        Returns:
            Unique model names in first-seen order.
        """
        names: list[str] = []
        seen: set[str] = set()
        for exposure in self.exposures.values():
            if exposures_tag and exposures_tag not in exposure.tags:
                continue
            for name in exposure.ref_names():
                if name not in seen:
                    seen.add(name)
                    names.append(name)
        return names
