from setuptools import setup, find_packages

setup(
    name='rdf-kv',
    version='0.1.0',
    description='Turn HTML form key/value pairs into RDF graph edits',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(include=["rdfkv", "rdfkv.*"]),
    entry_points={
        'console_scripts': [
            'rdfkv=rdfkv.cmd.rdfkv_cmd:main',
        ],
    },

    license='Apache License 2.0',
    install_requires=[
        "rdflib>=7.0.0",
        "pydantic>=2.0",
        "PyYAML",
        "python-dotenv",
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },

    classifiers=[
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.11',
)
