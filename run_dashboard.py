#!/usr/bin/env python3
"""
Launcher for the Lumina reading app.
Run this with: python run_dashboard.py [extra streamlit options]
"""

import os
import subprocess
import sys
from pathlib import Path


def main():
    project_dir = Path(__file__).parent.resolve()
    os.chdir(project_dir)
    sys.path.insert(0, str(project_dir))
    os.environ['PYTHONPATH'] = str(project_dir)

    from lumina.config import APP_URL, validate_config

    app_path = project_dir / "lumina" / "web" / "dashboard.py"
    if not app_path.exists():
        print(f"Error: reading app not found at {app_path}")
        sys.exit(1)

    print("=" * 50)
    print("  Starting Lumina")
    print("=" * 50)
    for issue in validate_config(require_api_key=False):
        print(f"  Warning: {issue}")
    print(f"\nLumina will open at: {APP_URL}")
    print("Press Ctrl+C to stop\n")

    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(app_path),
        "--server.headless", "true",
        *sys.argv[1:],
    ])


if __name__ == "__main__":
    main()
