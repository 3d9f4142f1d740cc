"""Helper script to create .env file interactively."""

from pathlib import Path

DEFAULT_BASE_URL = "http://localhost:8080"


def create_env_file():
    """Interactive script to create .env file for the client and the service."""
    print("="*60)
    print("SCOPE ESTIMATOR - Environment Setup")
    print("="*60)
    print()

    env_path = Path(".env")

    if env_path.exists():
        print("[WARN] .env file already exists!")
        overwrite = input("Do you want to overwrite it? (y/n): ").strip().lower()
        if overwrite != 'y':
            print("Setup cancelled.")
            return

    base_url = input(f"Estimation service URL [{DEFAULT_BASE_URL}]: ").strip() or DEFAULT_BASE_URL

    print("\n[INFO] The estimation service needs an Anthropic API key.")
    print("   Leave it empty if you only run the client against a remote service.")
    api_key = input("Enter your Anthropic API key: ").strip()
    if api_key and not api_key.startswith("sk-ant-"):
        print("[WARN] Anthropic keys usually start with 'sk-ant-'")

    lines = ["# Client", f"ESTIMATOR_BASE_URL={base_url}"]
    if api_key:
        lines += ["", "# Estimation service", f"ANTHROPIC_API_KEY={api_key}"]

    with open(env_path, 'w', encoding='utf-8') as f:
        f.write("\n".join(lines) + "\n")

    print("\n[OK] .env file created successfully!")
    print(f"   Location: {env_path.absolute()}")
    print()
    print("Next steps:")
    print("1. Install: pip install -e .")
    if api_key:
        print("2. Start the service: scope-estimator-server")
    print("3. Estimate a document: scope-estimate path/to/scope.pdf --export pdf")
    print()


if __name__ == "__main__":
    try:
        create_env_file()
    except KeyboardInterrupt:
        print("\n\nSetup cancelled by user.")
