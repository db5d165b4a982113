"""
glregistry - GitLab Container Registry and generic package tools.

Download images without a Docker client, extract files from layers, and
upload generic packages, with registry token auth and one-shot refresh.
"""
from .auth import AuthNegotiator, AuthSession, LongLivedCredential, ShortLivedCredential
from .download import download_image
from .extract import extract_file, extract_layer_file
from .fetcher import RequestContext, ResilientFetcher
from .packages import PackageUpload, upload_generic_package
from .registry import RegistryClient

__version__ = "0.1.0"

__all__ = [
    "AuthNegotiator",
    "AuthSession",
    "LongLivedCredential",
    "PackageUpload",
    "RegistryClient",
    "RequestContext",
    "ResilientFetcher",
    "ShortLivedCredential",
    "download_image",
    "extract_file",
    "extract_layer_file",
    "upload_generic_package",
]
