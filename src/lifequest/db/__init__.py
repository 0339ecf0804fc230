"""ORM schema for the SQL datastore."""
