# Portal: catalog, templating and generation for Helix portals, plus the web app that drives them.
# The FastAPI app lives in portal.app; import it from there so the CLIs do not load the server stack.

from portal import config

__all__ = ["config"]
