"""Schema cache, predicate planning, pagination and mutation building."""
