from setuptools import setup

setup(
    name='ladder-transcoder',
    version='0.1',
    packages=['transcoder'],
    python_requires='>=3.9',
    install_requires=[
        'fastapi',
        'uvicorn',
        'python-multipart',
        'python-dotenv',
        'requests'
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'httpx'
        ],
    },
)
