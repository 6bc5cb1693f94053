#!/usr/bin/env python3
"""
Histogram Equalization API Server
Upload an image, receive the equalized image together with the run's diagnostics.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

# Import services and models
from models.equalization_settings import EqualizationSettings
from models.errors import EqualizationError
from pipeline.equalization_pipeline import EqualizationPipeline
from services.image_service import ImageService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "50")) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
default_settings = EqualizationSettings.from_env()
default_pipeline = EqualizationPipeline(default_settings, image_service=image_service)

logger = logging.getLogger(__name__)


def pipeline_for_request(form) -> EqualizationPipeline:
    """Reuse the default pipeline unless the request overrides a setting."""
    overrides = {
        'max_policy': form.get('max_policy') or None,
        'rounding': form.get('rounding') or None,
        'target_max': int(form['target_max']) if form.get('target_max') else None,
    }
    if all(v is None for v in overrides.values()):
        return default_pipeline
    return EqualizationPipeline(EqualizationSettings.from_env(**overrides), image_service=image_service)


@app.route('/api/health', methods=['GET'])
def health():
    """Liveness probe."""
    return jsonify({'status': 'ok', 'device': default_pipeline.device.name})


@app.route('/api/equalize', methods=['POST'])
def equalize_image():
    """Equalize one uploaded image."""
    if 'image' not in request.files:
        return jsonify({'success': False, 'message': 'No image provided'}), 400

    file = request.files['image']
    if file.filename == '':
        return jsonify({'success': False, 'message': 'No file selected'}), 400

    filename = secure_filename(file.filename)
    try:
        pipeline = pipeline_for_request(request.form)
        image = image_service.decode(file.read(), filename)
    except ValueError as e:
        logger.error(f"Rejected upload {filename}: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400

    logger.info(f"Equalizing {filename}: {image.pixels.shape}")
    try:
        result = pipeline.run(image)
    except EqualizationError as e:
        logger.error(f"Equalization error: {e}")
        return jsonify({
            'success': False,
            'error': e.kind,
            'stage': e.stage,
            'message': str(e),
        }), 422

    return jsonify({
        'success': True,
        'filename': result.image.path.name if result.image.path else None,
        'shape': list(result.image.pixels.shape),
        'divisors': result.divisors,
        'luts': result.luts.tolist() if result.luts is not None else None,
        'timings': {t.stage: t.seconds for t in result.timings},
        'image': image_service.encode_png_base64(result.image),
    })


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'success': False, 'message': 'File too large'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server errors."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


if __name__ == '__main__':
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Histogram Equalization API on port {port}")
    app.run(host=os.getenv("API_HOST", "0.0.0.0"), port=port, debug=False)
