from setuptools import setup, find_packages

# Read dependencies from requirements.txt
with open("requirements.txt") as f:
    install_requires = [line.strip() for line in f if line.strip() and not line.startswith("#")]

# Read version from version.txt
with open("version.txt") as f:
    version = f.read().strip()

setup(
    name="fvharness",
    version=version,
    packages=["fvharness"] + ["fvharness." + pkg for pkg in find_packages(where="fvharness")],
    package_dir={"fvharness": "fvharness"},
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "fvharness=fvharness.main:main",
        ],
    },
    include_package_data=True,
    description="Functional verification harness for Felix against a Kubernetes datastore",
    author="Advanced Micro Devices, Inc.",
    author_email="support@amd.com",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Topic :: System :: Networking",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.9",
)
