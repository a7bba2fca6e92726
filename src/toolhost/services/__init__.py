"""Service instances: each wraps one upstream API as a tool server."""
