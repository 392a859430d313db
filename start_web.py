#!/usr/bin/env python3
"""Start the DepShift web application."""

import uvicorn

HOST = "0.0.0.0"
PORT = 8000

if __name__ == "__main__":
    print(f"DepShift API on http://localhost:{PORT}")
    print("  POST /api/plan      group plan items into safety-ordered batches")
    print("  POST /api/classify  classify captured npm install output")
    print("  GET  /docs          interactive API documentation")
    print()

    uvicorn.run(
        "apps.web.main:app",
        host=HOST,
        port=PORT,
        reload=True,
        reload_dirs=["apps", "core"],
    )
