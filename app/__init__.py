"""Process entry points and configuration of the sea battle bot."""
