import boto3
from botocore.exceptions import ClientError, NoCredentialsError
import logging

from tunebox.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class S3Service:
    def __init__(self, bucket_name, region):
        self.s3 = boto3.client('s3', region_name=region)
        self.bucket_name = bucket_name
        self.region = region

    @classmethod
    def from_config(cls, config):
        return cls(bucket_name=config['AWS_S3_BUCKET'], region=config['AWS_REGION'])

    def get_stream_url(self, file_path, expires_in):
        """Pre-signed GET URL for a track's audio object"""
        try:
            return self.s3.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': file_path},
                ExpiresIn=expires_in
            )
        except (NoCredentialsError, ClientError) as e:
            logger.error(f"Failed to sign stream URL for {file_path}: {str(e)}")
            raise UpstreamUnavailable('Storage unavailable, please retry') from e
