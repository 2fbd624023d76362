from __future__ import annotations

import uvicorn

from insta_relay.main import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
