"""
Upload and static file routes for the chat room.
Handles audio/file uploads that chat messages later reference by URL.
"""

import logging
from flask import Blueprint, current_app, jsonify, request, send_from_directory

from chatroom.utils.storage import LocalBlobStorage, AUDIO_BUCKET, FILES_BUCKET


logger = logging.getLogger(__name__)

uploads_bp = Blueprint('uploads', __name__)


def get_storage():
    """Blob storage rooted at the configured upload folder"""
    return LocalBlobStorage(current_app.config["UPLOAD_FOLDER"])


@uploads_bp.route("/")
def index():
    return "Chat Room Server is running"


@uploads_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@uploads_bp.route("/api/upload/file", methods=["POST"])
def upload_file():
    """Upload a generic file (allow-listed types, size-capped)"""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"message": "No file uploaded"}), 400

    if upload.mimetype not in current_app.config["ALLOWED_FILE_MIME_TYPES"]:
        return jsonify({"message": "File type not allowed"}), 400

    max_size = current_app.config["MAX_FILE_SIZE"]
    data = upload.stream.read(max_size + 1)
    if len(data) > max_size:
        return jsonify({"message": "File too large"}), 413

    try:
        file_url = get_storage().store(data, upload.filename, bucket=FILES_BUCKET)
    except OSError as e:
        logger.error(f"Error uploading file: {e}")
        return jsonify({"message": "Failed to upload file"}), 500

    return jsonify({
        "filename": upload.filename,
        "fileUrl": file_url,
        "fileSize": len(data),
        "fileType": upload.mimetype,
        "isImage": upload.mimetype.startswith("image/"),
    })


@uploads_bp.route("/api/upload/audio", methods=["POST"])
def upload_audio():
    """Upload a recorded audio clip"""
    upload = request.files.get("audio")
    if upload is None:
        return jsonify({"message": "No audio file uploaded"}), 400

    try:
        audio_url = get_storage().store(upload.read(), upload.filename, bucket=AUDIO_BUCKET)
    except OSError as e:
        logger.error(f"Error uploading audio: {e}")
        return jsonify({"message": "Failed to upload audio file"}), 500

    return jsonify({
        "audioUrl": audio_url,
        "fullUrl": f"{request.host_url.rstrip('/')}{audio_url}",
        "duration": request.form.get("duration"),
    })


@uploads_bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    """Serve a previously uploaded blob"""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
