"""Key and register estimation from pitch series."""
