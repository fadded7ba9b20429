from setuptools import setup, find_packages

# Read dependencies from requirements.txt
with open("requirements.txt") as f:
    install_requires = [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Read version from version.txt
with open("version.txt") as f:
    version = f.read().strip()

setup(
    name="tracearchive",
    version=version,
    packages=["tracearchive"] + ["tracearchive." + pkg for pkg in find_packages(where="tracearchive")],
    package_dir={"tracearchive": "tracearchive"},
    package_data={"tracearchive": ["input/platforms/*.yaml", "input/platforms/*.json"]},
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "tracearchive=tracearchive.main:main",
        ],
    },
    include_package_data=True,
    description="Link raw distributed-job execution traces into validated, annotated archives",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "Topic :: Software Development :: Testing",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
)
