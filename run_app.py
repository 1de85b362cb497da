# run_app.py
import streamlit.web.cli as stcli
import os, sys

def resolve_path(path):
    if getattr(sys, "frozen", False):
        basedir = sys._MEIPASS
    else:
        basedir = os.path.dirname(__file__)
    return os.path.join(basedir, path)

if __name__ == "__main__":
    # Headless: the console is opened from a browser pointed at the server
    os.environ["STREAMLIT_SERVER_HEADLESS"] = "true"
    os.environ.setdefault("API_BASE_URL", "http://localhost:8000")

    sys.argv = [
        "streamlit",
        "run",
        resolve_path("app.py"),
        "--global.developmentMode=false",
        f"--server.port={os.environ.get('CONSOLE_PORT', '8501')}",
    ]
    sys.exit(stcli.main())
