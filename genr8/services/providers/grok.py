from genr8.services.providers.kie_jobs import KieJobsAdapter


class GrokImagineAdapter(KieJobsAdapter):
    """Image-to-video: animates either external images or a previous kie task's output."""

    model_id = "grok-imagine"
    media_type = "video"

    def kie_model(self, options: dict) -> str:
        return "grok-imagine/image-to-video"

    def build_input(self, prompt: str, options: dict) -> dict:
        data = {
            "prompt": prompt,
            "mode": options.get("mode", "normal"),
        }
        if options.get("image_urls"):
            data["image_urls"] = list(options["image_urls"])
        elif options.get("task_id"):
            data["task_id"] = options["task_id"]
            data["index"] = options.get("index", 0)
        return data
