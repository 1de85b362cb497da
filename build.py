# build.py
import PyInstaller.__main__
import sys

# Streamlit + pandas analysis overflows the default limit
sys.setrecursionlimit(5000)

MODULES = ["app", "views", "config", "api", "session", "resources", "pipeline", "forms", "roles", "transactions"]

if __name__ == '__main__':
    PyInstaller.__main__.run([
        'run_app.py',
        '--name=Equipment_Admin_Console',
        '--onefile',
        '--clean',

        # Source files are loaded by `streamlit run`, not imported by run_app.py
        *[f'--add-data={m}.py{";" if sys.platform == "win32" else ":"}.' for m in MODULES],
        *[f'--hidden-import={m}' for m in MODULES],

        '--collect-all=streamlit',
        '--collect-all=altair',
        '--collect-all=pandas',
        '--collect-all=plotly',
        '--collect-all=httpx',
        '--collect-all=qrcode',
        '--collect-all=PIL',

        # Streamlit reads its own version from package metadata
        '--copy-metadata=streamlit',
        '--copy-metadata=packaging',

        '--exclude-module=pytest',
    ])
