"""Analysis stages: normalize, load layers, find overlaps, reproject, report."""
