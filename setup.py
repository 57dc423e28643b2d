import setuptools

setuptools.setup(
    name="lce",
    version="0.1.0",
    author="LCE Developers",
    description="Local Collective Embeddings (LCE) learns a shared non-negative embedding of two views of the same "
                "rows, regularized by a nearest neighbor graph of the rows, and ranks the columns of one view for new "
                "rows of the other. Includes data handling, tf-idf weighting, graph construction, batch training, "
                "NDCG evaluation and a CLI.",
    packages=setuptools.find_namespace_packages(include=["lce", "lce.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "scipy",
        "pandas",
        "tqdm",
        "click",
        "plotly",
        "psutil",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "lce=lce.cli.lce_cli:lce_cli",
        ],
    },
)
