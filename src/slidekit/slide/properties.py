"""Property catalog synthesis for opened slides.

The catalog mixes two namespaces. Keys reported by the engine are copied
verbatim (``openslide.mpp-x``, ``aperio.AppMag``, ...). Keys under the
engine's own ``openslide.`` namespace are also mirrored into the slidekit
namespace (``slidekit.mpp-x``), and the slidekit namespace additionally
carries geometry facts read from the live engine handle:

    slidekit.level-count
    slidekit.level[<i>].width / .height / .downsample
    slidekit.associated-image[<name>].width / .height / .icc-size
    slidekit.icc-size

``icc-size`` keys are only present when a profile is embedded.
"""

from __future__ import annotations

import re

from slidekit.engine.protocol import EngineHandle

ENGINE_NAMESPACE = "openslide"
CATALOG_NAMESPACE = "slidekit"

# Scalar properties re-read from the engine into the slidekit namespace
WELL_KNOWN_PROPERTIES: tuple[str, ...] = (
    "vendor",
    "background-color",
    "bounds-height",
    "bounds-width",
    "bounds-x",
    "bounds-y",
    "comment",
    "mpp-x",
    "mpp-y",
    "objective-power",
    "quickhash-1",
)

_LEVEL_TEMPLATE = "level[{level}].{field}"
_ASSOCIATED_TEMPLATE = "associated-image[{name}].{field}"
_ENGINE_ASSOCIATED_PREFIX = "associated."
_LEVEL_DOWNSAMPLE = re.compile(rf"{CATALOG_NAMESPACE}\.level\[\d+\]\.downsample")


def engine_key(suffix: str) -> str:
    """Return the engine-namespace key for ``suffix``."""
    return f"{ENGINE_NAMESPACE}.{suffix}"


def catalog_key(suffix: str) -> str:
    """Return the slidekit-namespace key for ``suffix``."""
    return f"{CATALOG_NAMESPACE}.{suffix}"


def level_key(level: int, field: str) -> str:
    """Return the catalog key of a per-level field (width, height, downsample)."""
    return catalog_key(_LEVEL_TEMPLATE.format(level=level, field=field))


def associated_image_key(name: str, field: str) -> str:
    """Return the catalog key of an associated-image field."""
    return catalog_key(_ASSOCIATED_TEMPLATE.format(name=name, field=field))


def normalize_key(name: str) -> str | None:
    """Map an engine-namespace key to its slidekit alias.

    The engine publishes associated-image geometry as
    ``openslide.associated.<name>.<field>``; those keys map to the catalog's
    ``associated-image[<name>].<field>`` form.

    Returns:
        The slidekit key, or None if ``name`` is not in the engine namespace.

    Example:
        >>> normalize_key("openslide.mpp-x")
        'slidekit.mpp-x'
        >>> normalize_key("openslide.associated.label.width")
        'slidekit.associated-image[label].width'
        >>> normalize_key("aperio.AppMag") is None
        True
    """
    prefix = f"{ENGINE_NAMESPACE}."
    if not name.startswith(prefix):
        return None
    suffix = name[len(prefix) :]
    if suffix.startswith(_ENGINE_ASSOCIATED_PREFIX):
        image, _, field = suffix[len(_ENGINE_ASSOCIATED_PREFIX) :].rpartition(".")
        if image:
            return associated_image_key(image, field)
    return catalog_key(suffix)


def format_downsample(downsample: float) -> str:
    return repr(float(downsample))


def _alias_value(alias: str, value: str) -> str:
    """Return ``value`` in the catalog's number format for ``alias``."""
    if _LEVEL_DOWNSAMPLE.fullmatch(alias) is None:
        return value
    try:
        return format_downsample(float(value))
    except ValueError:
        return value


def add_engine_properties(catalog: dict[str, str], handle: EngineHandle) -> None:
    """Copy the engine's properties into ``catalog`` and alias its namespace.

    Empty values are skipped, as they carry no information. Raw keys keep the
    engine's text; aliased downsamples are reformatted with
    :func:`format_downsample`.
    """
    for name in handle.get_property_names():
        value = handle.get_property_value(name)
        if not value:
            continue
        catalog[name] = value
        alias = normalize_key(name)
        if alias is not None:
            catalog[alias] = _alias_value(alias, value)


def engine_property_view(handle: EngineHandle, vendor: str = "") -> dict[str, str]:
    """Build a catalog from the engine's reported properties alone.

    The engine publishes its level and associated-image geometry as
    properties, so this carries the same slidekit keys as
    :func:`synthesize_catalog` without querying the geometry calls.
    """
    catalog: dict[str, str] = {}
    add_engine_properties(catalog, handle)
    if vendor:
        catalog.setdefault(catalog_key("vendor"), vendor)
    return catalog


def synthesize_catalog(handle: EngineHandle, vendor: str = "") -> dict[str, str]:
    """Build the full property catalog of a healthy engine handle.

    Engine properties come first, then geometry read from the handle
    overwrites any engine-reported alias with the live value.

    Args:
        handle: Engine handle with no latched error.
        vendor: Detected vendor, used when the engine reports none.

    Returns:
        Mapping of property name to string value.
    """
    catalog = engine_property_view(handle, vendor)

    level_count = handle.get_level_count()
    catalog[catalog_key("level-count")] = str(level_count)
    for level in range(level_count):
        width, height = handle.get_level_dimensions(level)
        catalog[level_key(level, "width")] = str(width)
        catalog[level_key(level, "height")] = str(height)
        catalog[level_key(level, "downsample")] = format_downsample(
            handle.get_level_downsample(level)
        )

    for name in handle.get_associated_image_names():
        width, height = handle.get_associated_image_dimensions(name)
        catalog[associated_image_key(name, "width")] = str(width)
        catalog[associated_image_key(name, "height")] = str(height)
        icc_size = handle.get_associated_image_icc_profile_size(name)
        if icc_size > 0:
            catalog[associated_image_key(name, "icc-size")] = str(icc_size)

    icc_size = handle.get_icc_profile_size()
    if icc_size > 0:
        catalog[catalog_key("icc-size")] = str(icc_size)

    for suffix in WELL_KNOWN_PROPERTIES:
        value = handle.get_property_value(engine_key(suffix))
        if suffix == "vendor" and not value:
            value = vendor
        if value:
            catalog[catalog_key(suffix)] = value

    return catalog
