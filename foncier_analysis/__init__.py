"""Parcel overlap analysis engine for Beninese land-tenure checks.

Takes a parcel boundary extracted from a topographic document (UTM zone
31N), tests it against the regulatory reference layers (protected areas,
public domain, litigation and restriction zones, land titles), reprojects
the geometries to WGS 84 and builds a structured parcel report.
"""

__version__ = "0.1.0"
