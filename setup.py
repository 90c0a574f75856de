"""Setup script for roompanel, the meeting room status display server."""

import os
from pathlib import Path

from setuptools import find_packages, setup
from setuptools.command.develop import develop
from setuptools.command.install import install


def post_install_setup():
    """Post-installation setup to create the data directory and show setup guidance."""
    try:
        data_dir = Path.home() / ".local" / "share" / "roompanel"
        data_dir.mkdir(parents=True, exist_ok=True)
        if hasattr(os, "chmod"):
            os.chmod(data_dir, 0o755)

        rooms_file = data_dir / "rooms.json"
        if not rooms_file.exists():
            print("\n" + "=" * 60)
            print("roompanel installation complete")
            print("=" * 60)
            print(f"Data directory: {data_dir}")
            print("\nNext steps:")
            print(f"1. Point ROOMPANEL_ROOMS_FILE at a rooms.json registry (e.g. {rooms_file})")
            print("2. Or set ROOMPANEL_CALDAV_URL to serve a single room")
            print("3. Run 'roompanel --help' to see all available options")
            print("=" * 60)

    except OSError as e:
        print(f"Warning: Post-install setup failed: {e}")
        print("You may need to create the data directory manually.")


class PostInstallCommand(install):
    """Custom install command with post-install setup."""

    def run(self):
        install.run(self)
        post_install_setup()


class PostDevelopCommand(develop):
    """Custom develop command with post-install setup."""

    def run(self):
        develop.run(self)
        post_install_setup()


readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Runtime and test requirements share one file; pytest lines go to the dev extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="roompanel",
    version="0.1.0",
    description="Live meeting room status for kiosk displays, backed by CalDAV and .ics calendars",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
        "Framework :: aiohttp",
    ],
    keywords="calendar caldav ics meeting-room kiosk display aiohttp",
    entry_points={
        "console_scripts": [
            "roompanel=roompanel.__main__:main",
        ],
    },
    cmdclass={
        "install": PostInstallCommand,
        "develop": PostDevelopCommand,
    },
    zip_safe=False,
    platforms=["linux", "macos"],
)
