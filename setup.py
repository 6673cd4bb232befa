from setuptools import setup, find_packages

setup(
    name="scriptlens",
    version="0.1.0",
    description="Find, browse and run the functions in your bash scripts",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "typer>=0.9",
        "rich>=13.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "scriptlens=scriptlens.cli.manage:app",
        ],
    },
    keywords=[
        "bash", "shell", "scripts", "functions", "fuzzy-search",
        "developer-tools", "cli", "task-runner"
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Environment :: Console",
        "Topic :: Software Development :: Build Tools",
        "Topic :: System :: Shells",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
