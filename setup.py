from setuptools import setup, find_packages

setup(
    name="attodo-dateparse",
    version="0.1.0",
    description="Natural-language due dates for attodo task titles, with AT Protocol task storage",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "requests>=2.28.1",
        "python-dateutil>=2.8.2",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "attodo=attodo.cli:main",
        ],
    },
    python_requires=">=3.8",
)
