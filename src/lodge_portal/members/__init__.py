"""Member profiles: loading, validation and the CRUD facade."""
