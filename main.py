"""Main application entry point."""

import os

from campus_calendar.config.environment import IS_PRODUCTION_ENVIRONMENT
from campus_calendar.api.app import app

if __name__ == "__main__":
    port = int(os.environ.get('PORT', 8000))
    if not IS_PRODUCTION_ENVIRONMENT:
        # Development mode - use direct app instance for better debugging
        import uvicorn
        uvicorn.run(
            app,  # Direct app instance for development
            host="0.0.0.0",
            port=port,
            log_level="debug"
        )
    else:
        # Production mode - one worker, the synchronizer cache lives in-process
        import uvicorn
        uvicorn.run(
            "campus_calendar.api.app:app",
            host="0.0.0.0",
            port=port,
            reload=False,
            workers=1,
            log_level="info",
            proxy_headers=True,
            forwarded_allow_ips="*"
        )
