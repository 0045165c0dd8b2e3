"""
Package source retrieval and verification

Source tarballs live in the distfiles cache under the basename of their
SOURCE url and are verified against the seed's md5 CHECKSUM.
"""

import os
import hashlib
import logging
from urllib.parse import urlparse

import requests

from .models import PackageSpec

logger = logging.getLogger('BIRB.package.source')


def distfile_name(spec: PackageSpec) -> str:
    return os.path.basename(urlparse(spec.source).path)


class DistfileSource:
    """Checks that a package's source tarball is present and intact"""

    def __init__(self, distfiles_dir: str, fetch: bool = False, timeout: int = 60):
        self.distfiles_dir = distfiles_dir
        self.fetch = fetch
        self.timeout = timeout

    def path(self, spec: PackageSpec) -> str:
        return os.path.join(self.distfiles_dir, distfile_name(spec))

    def verify(self, spec: PackageSpec) -> bool:
        """True when the distfile exists (fetching it if enabled) and its checksum matches"""
        if not spec.source or not distfile_name(spec):
            logger.error(f"{spec.name} declares no source")
            return False

        local_path = self.path(spec)
        if not os.path.isfile(local_path):
            if not self.fetch:
                logger.error(f"Source of {spec.name} is missing: {local_path}")
                return False
            try:
                self.download(spec)
            except (requests.RequestException, OSError) as e:
                logger.error(f"Failed to download {spec.source}: {e}")
                return False

        actual = self._calculate_checksum(local_path)
        if actual != spec.checksum:
            logger.error(f"Checksum mismatch for {local_path}: expected {spec.checksum}, got {actual}")
            return False
        return True

    def download(self, spec: PackageSpec) -> str:
        """Stream the source tarball into the distfiles cache"""
        local_path = self.path(spec)
        partial = f"{local_path}.part"
        os.makedirs(self.distfiles_dir, exist_ok=True)

        logger.info(f"Downloading {spec.source}")
        response = requests.get(spec.source, stream=True, timeout=self.timeout)
        response.raise_for_status()
        try:
            with open(partial, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
            os.replace(partial, local_path)
        finally:
            response.close()
            if os.path.exists(partial):
                os.remove(partial)
        return local_path

    def _calculate_checksum(self, file_path: str) -> str:
        """Calculate the md5 checksum of a file"""
        md5_hash = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                md5_hash.update(chunk)
        return md5_hash.hexdigest()
