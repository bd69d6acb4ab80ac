from typing import Optional

import logging
import sys

from PyQt5.QtWidgets import QApplication

from PC_Libs.GalleryStoreLib import GalleryService, LocalGalleryStore, create_gallery_backend
from PC_Libs.ImageEditingLib.edit_session import EditSession
from PC_Libs.ImageEditingLib.image_editor_window import PromptCanvasWindow
from PC_Libs.ServicesLib import GenerationClient, GenerationWorkflow, ModerationClient, UploadClient
from PC_Libs.config import AppConfig, load_env

logger = logging.getLogger(__name__)


def build_gallery(config: AppConfig) -> GalleryService:
    uploader: Optional[UploadClient] = None
    if config.upload_endpoint:
        uploader = UploadClient(config.upload_endpoint, timeout=config.http_timeout)

    return GalleryService(
        LocalGalleryStore(config.gallery_dir),
        backend=create_gallery_backend(config.database),
        uploader=uploader,
    )


def build_workflow(config: AppConfig, session: EditSession) -> GenerationWorkflow:
    moderator = None
    if config.moderation_endpoint:
        moderator = ModerationClient(config.moderation_endpoint, timeout=config.http_timeout)
    generator = GenerationClient(config.generation_endpoint, timeout=config.http_timeout)
    return GenerationWorkflow(session, generator, moderator)


def main() -> None:
    load_env()
    config = AppConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Generation endpoint: {config.generation_endpoint}")
    logger.info(f"Gallery database: {config.database.db_type}")

    app = QApplication(sys.argv)
    session = EditSession()
    workflow = build_workflow(config, session)
    window = PromptCanvasWindow(session, workflow, build_gallery(config))
    window.show()
    exit_code = app.exec_()

    workflow.generator.close()
    if workflow.moderator is not None:
        workflow.moderator.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
