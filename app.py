from pistats import create_app
import os

# Module-level app instance for WSGI servers
app = create_app()

if __name__ == "__main__":
    debug_mode = os.getenv("FLASK_DEBUG", "false").lower() == "true"
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5001"))

    app.logger.info(f"Starting pistats on {host}:{port}, debug={debug_mode}")
    # The reloader would start a second updater thread
    app.run(debug=debug_mode, host=host, port=port, use_reloader=False)
