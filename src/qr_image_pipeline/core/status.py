"""Status recorder backed by a DynamoDB batch table."""

from botocore.exceptions import ClientError

from .error_handling import wrap_errors
from .exceptions import StatusStoreError
from .logging_config import get_logger
from .models import StatusCode
from .protocols import DynamoDBClientProtocol, StatusRecorder


class DynamoStatusRecorder(StatusRecorder):
    """Writes the status and result url of one batch row.

    The update is conditional on the row already existing: the batch row is
    created by whoever requested the batch, this stage only completes it.
    """

    def __init__(
        self,
        dynamodb_client: DynamoDBClientProtocol,
        status_column: str = "status",
        url_column: str = "url",
    ):
        self._client = dynamodb_client
        self._status_column = status_column
        self._url_column = url_column
        self._logger = get_logger("status")

    @wrap_errors(StatusStoreError)
    def record_status(
        self,
        table: str,
        status_code: StatusCode,
        url: str,
        key_column: str,
        key_value: str,
    ) -> None:
        if not key_value:
            raise StatusStoreError(f"No value for key column {key_column}")

        self._logger.debug(
            f"Updating {table} {key_column}={key_value} status={int(status_code)}"
        )
        try:
            self._client.update_item(
                TableName=table,
                Key={key_column: {"S": key_value}},
                UpdateExpression="SET #status = :status, #url = :url",
                ConditionExpression="attribute_exists(#key)",
                ExpressionAttributeNames={
                    "#status": self._status_column,
                    "#url": self._url_column,
                    "#key": key_column,
                },
                ExpressionAttributeValues={
                    ":status": {"N": str(int(status_code))},
                    ":url": {"S": url},
                },
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "ConditionalCheckFailedException":
                raise StatusStoreError(
                    f"No row in {table} with {key_column}={key_value}"
                ) from e
            raise

        self._logger.info(
            f"Recorded status {StatusCode(status_code).name} for {key_column}={key_value}"
        )
