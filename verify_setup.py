"""
Setup verification script for the LifelongLearners backend.
Checks packages, configuration, the database and the LLM endpoint.
"""
import asyncio
import os
import sys
from typing import Awaitable, Callable, List, Tuple

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_python_version() -> bool:
    """Check Python version is 3.10+."""
    version = sys.version_info
    ok = version >= (3, 10)
    label = f"{version.major}.{version.minor}.{version.micro}"
    print_status(f"Python version: {label}" if ok else f"Python version {label} (requires 3.10+)", ok)
    return ok


async def check_dependencies() -> bool:
    """Check the runtime packages import (import names, not distribution names)."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic",
        "pydantic_settings",
        "sqlalchemy",
        "asyncpg",
        "alembic",
        "httpx",
        "fuzzywuzzy",
    ]

    all_installed = True
    for package in required_packages:
        try:
            __import__(package)
            print_status(f"Package '{package}' installed", True)
        except ImportError:
            print_status(f"Package '{package}' missing", False)
            all_installed = False

    return all_installed


async def check_env_file() -> bool:
    if os.path.exists(".env"):
        print_status(".env file exists", True)
        return True
    print_status(".env file missing (settings fall back to defaults)", False)
    return False


async def check_database() -> bool:
    """Open a session on DATABASE_URL and run SELECT 1."""
    from app.config import settings
    from app.database import AsyncSessionLocal, close_db, ping_db

    try:
        async with AsyncSessionLocal() as session:
            ok = await ping_db(session)
    finally:
        await close_db()

    print_status(f"Database reachable ({settings.DATABASE_URL.split('@')[-1]})", ok)
    if not ok:
        print(f"  {YELLOW}Check DATABASE_URL and run: alembic upgrade head{RESET}")
    return ok


async def check_llm() -> bool:
    """A missing key is fine (template replies); a configured but dead endpoint is not."""
    from app.config import settings
    from app.services.tortoise_llm import TortoiseLLMService

    llm = TortoiseLLMService()
    if not llm.enabled:
        print_status("OPENAI_API_KEY not set (the Tortoise will use template replies)", True)
        return True

    ok = await llm.check_health()
    print_status(f"LLM endpoint {settings.OPENAI_BASE_URL}", ok)
    print_status(f"Chat model: {settings.OPENAI_CHAT_MODEL}", ok)
    return ok


async def main():
    """Run all verification checks."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}LifelongLearners Backend - Setup Verification{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    checks: List[Tuple[str, Callable[[], Awaitable[bool]]]] = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment File", check_env_file),
        ("Database", check_database),
        ("LLM Endpoint", check_llm),
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n{BLUE}Checking {check_name}...{RESET}")
        try:
            result = await check_func()
            results.append(result)
        except Exception as e:
            print_status(f"Error during check: {str(e)}", False)
            results.append(False)

    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ All checks passed! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print("  uvicorn app.main:app --reload")
    else:
        print(f"{RED}✗ Some checks failed ({passed}/{total} passed){RESET}")
        print(f"\n{YELLOW}Please fix the issues above before running the backend.{RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
