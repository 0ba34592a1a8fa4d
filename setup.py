from setuptools import setup, find_packages


with open("README.rst") as f:
    long_description = f.read()

setup(
    name="django-anchor-auth",
    version="1.0.0",
    description="A Django app implementing SEP-10 Stellar Web Authentication for anchors",
    long_description=long_description,
    long_description_content_type="text/x-rst",
    license="Apache license 2.0",
    classifiers=[
        "Environment :: Web Environment",
        "Framework :: Django",
        "Framework :: Django :: 4.2",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
    ],
    keywords=[
        "stellar",
        "anchor",
        "server",
        "sep-10",
        "sep10",
        "web authentication",
    ],
    include_package_data=True,
    package_dir={"": "anchor"},
    packages=find_packages("anchor"),
    install_requires=[
        "django>=3.2,<6.0",
        "django-environ",
        "djangorestframework>=3.12,<4.0",
        "django-cors-headers>=3.7",
        "stellar-sdk>=9.0,<14.0",
        "requests>=2.25",
        "toml",
        "pyjwt>=2.4,<3.0",
    ],
    extras_require={"test": ["pytest", "pytest-django"]},
    python_requires=">=3.8",
)
