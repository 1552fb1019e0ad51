import setuptools

setuptools.setup(
    name="nmfkit",
    version="2024.0.1",
    description="Non-negative matrix factorization (NMF) of dense matrices, V ~ WH, using multiplicative distance, "
                "multiplicative divergence or alternating least squares update rules, with convergence detection, "
                "validated initialization, batch runs and a command line interface.",
    packages=setuptools.find_packages(include=["nmfkit", "nmfkit.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "tqdm",
        "click",
        "plotly",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "nmfkit=nmfkit.cli.nmf_cli:nmfkit_cli",
        ],
    },
)
