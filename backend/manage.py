import os

from artshare import create_app

# Create an app instance; tables are created on startup
app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 4000))
    print(f"Server running at http://localhost:{port}")
    app.run(host='0.0.0.0', port=port, threaded=True)
