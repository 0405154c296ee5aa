import sys
import subprocess
import platform
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
VENV_DIR = BASE_DIR / "venv"


def in_virtualenv():
    return sys.prefix != sys.base_prefix

def run_command(command, shell=False):
    try:
        subprocess.check_call(command, shell=shell)
    except subprocess.CalledProcessError:
        print(f"❌ Command failed: {' '.join(command)}")
        sys.exit(1)


def get_venv_paths():
    if in_virtualenv():
        return Path(sys.executable)
    if platform.system() == "Windows":
        return VENV_DIR / "Scripts" / "python.exe"
    return VENV_DIR / "bin" / "python"


def check_python():
    print("📋 Checking Python version...")
    if sys.version_info < (3, 9):
        print("❌ Python 3.9+ is required")
        sys.exit(1)
    print(f"✅ Python {sys.version.split()[0]} detected")


def create_venv():
    if in_virtualenv():
        print("📦 Virtual environment already active — skipping creation")
        return

    if VENV_DIR.exists():
        print("📦 Virtual environment already exists")
        return

    print("📦 Creating virtual environment...")
    run_command([sys.executable, "-m", "venv", str(VENV_DIR)])


def install_dependencies(python_path):
    print("⬆️ Upgrading pip...")
    run_command([str(python_path), "-m", "pip", "install", "--upgrade", "pip"])

    print("📚 Installing dependencies...")
    if (BASE_DIR / "requirements.txt").exists():
        run_command([str(python_path), "-m", "pip", "install", "-r", str(BASE_DIR / "requirements.txt")])
    else:
        print("⚠️ requirements.txt not found")


def create_env_file():
    env_file = BASE_DIR / ".env"
    if env_file.exists():
        print("⚙️ .env file already exists")
        return

    print("📝 Creating .env file...")
    env_content = """# Storage
DATABASE_URL=sqlite:///./bitacora.db
STORAGE_BACKEND=sql

# Price/name lookups (Alpha Vantage)
PRICE_LOOKUP_ENABLED=false
ALPHA_VANTAGE_API_KEY=
PRICE_LOOKUP_TIMEOUT_SECONDS=8

# API
API_AUTH_ENABLED=false
API_AUTH_TOKEN=

# Logging
LOG_LEVEL=INFO
LOG_FILE=logs/bitacora.log
"""
    env_file.write_text(env_content)
    print("✅ .env file created. Edit it before starting the API.")


def create_log_file():
    (BASE_DIR / "logs").mkdir(exist_ok=True)
    (BASE_DIR / "logs" / "bitacora.log").touch(exist_ok=True)
    print("📝 Log file ready")


def run_migrations(python_path):
    print("🔄 Running database migrations...")
    if (BASE_DIR / "alembic.ini").exists():
        subprocess.check_call([str(python_path), "-m", "alembic", "upgrade", "head"], cwd=BASE_DIR)
    else:
        print("⚠️ alembic.ini not found — skipping migrations")


def print_next_steps():
    print("\n✅ Setup completed successfully!\n")
    print("📋 Next steps:")
    print("1. Activate virtual environment:")
    if platform.system() == "Windows":
        print("   venv\\Scripts\\activate")
    else:
        print("   source venv/bin/activate")

    print("2. Edit .env (set ALPHA_VANTAGE_API_KEY to enable quotes)")
    print("3. Run: python main.py")
    print("4. Open http://localhost:8000/docs")


def main():
    print("🚀 Setting up Options Ledger...\n")

    check_python()
    create_venv()

    python_path = get_venv_paths()

    install_dependencies(python_path)
    create_env_file()
    create_log_file()
    run_migrations(python_path)
    print_next_steps()


if __name__ == "__main__":
    main()
