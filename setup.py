from setuptools import find_packages, setup

VERSION = "0.1.0"

setup(
    name="server-status-bot",
    version=VERSION,
    description="Discord bot keeping a single live game server status message up to date",
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "server-status-bot = server_status_bot.main:run_discord_bot",
        ]
    },
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "py-cord",
        "aiohttp",
        "httpx",
        "stamina",
        "environs",
        "python-a2s",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
