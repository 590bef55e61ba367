from setuptools import setup

setup(
    name='don-draper',
    version='1.0',
    description='Reversible digit-transform obfuscation for sequential integer IDs.',
    py_modules=[
        'app',
        'config',
        'core_logic',
        'db_manager',
        'draper',
        'models',
        'obfuscation',
        'prefix',
    ],
    python_requires='>=3.9',
    install_requires=[
        'fastapi',
        'pydantic>=2',
        'slowapi',
        'uvicorn',
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx',
        ],
    },
)
