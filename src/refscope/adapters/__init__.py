"""Adapters around the core: public-suffix lookup and rule file loading."""
