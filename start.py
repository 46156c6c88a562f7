"""
Quick start script for local development.
Starts the simulator with auto-reload.
"""
import subprocess
import sys


def main():
    """Starts the development server."""
    print("Emerald Yield Simulator - Development Server\n")

    print("Starting FastAPI server on port 8000...")
    print("Simulator:    http://localhost:8000")
    print("Admin:        http://localhost:8000/admin/simulations")
    print("Health check: http://localhost:8000/health\n")

    try:
        subprocess.run(
            [sys.executable, "-m", "uvicorn", "app.main:app", "--reload", "--host", "0.0.0.0", "--port", "8000"],
            check=True
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped. Goodbye!")
    except subprocess.CalledProcessError as e:
        print(f"\nError starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
