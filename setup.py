from setuptools import setup, find_packages


setup(
    name='torch_krylov',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'examples']),
    install_requires=[
        'torch>=2.0.0',
        'numpy',
        'scipy'
    ],
    extras_require={
        'test':['pytest']
    }
)
