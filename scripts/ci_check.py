import os
import subprocess
import sys
import tempfile


def run_step(name: str, cmd: list[str], env: dict | None = None) -> None:
    print(f"\n==> {name}")
    print(" ".join(cmd))
    result = subprocess.run(cmd, check=False, env=env)
    if result.returncode != 0:
        raise SystemExit(result.returncode)


def main() -> None:
    run_step("Run unit tests", [sys.executable, "-m", "unittest", "discover", "-s", "tests", "-v"])

    # drift is checked against a scratch database built from the migrations
    with tempfile.TemporaryDirectory(prefix="coach_ci_") as tmp:
        env = dict(os.environ)
        env["COACH_DATABASE_URI"] = f"sqlite:///{os.path.join(tmp, 'ci.db')}"
        env.pop("DATABASE_URL", None)
        flask = [sys.executable, "-m", "flask", "--app", "app", "db"]
        run_step("Apply migrations", flask + ["upgrade"], env=env)
        run_step("Check migration drift", flask + ["check"], env=env)
    print("\nAll checks passed.")


if __name__ == "__main__":
    main()
