"""Pipeline orchestration for a single parcel analysis request."""
