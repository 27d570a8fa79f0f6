from inbox_api.services.ai_service import generate_reply
from inbox_api.services.auto_reply_service import AutoReply, resolve_auto_reply
from inbox_api.services.dispatch_service import DispatchResult, dispatch_reply
from inbox_api.services.ingestion_service import (
    IngestResult,
    ReplyJob,
    process_delivery,
    process_message,
    run_reply_job,
)
