"""HTTP routers for the HotGist API."""
