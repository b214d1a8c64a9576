#!/usr/bin/env python3
import uvicorn
import os

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=port,
        # Reload would fork a second scheduler holding the same reminders
        reload=os.getenv("RELOAD", "false").lower() == "true",
        log_level="info"
    )
